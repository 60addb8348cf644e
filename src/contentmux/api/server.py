"""
CONTENTMUX - Production FastAPI Server

Subscription, usage and content-history API behind the ContentMux front end.

Endpoints:
- GET /tiers - Pricing table
- GET/POST/DELETE /usage - Check, record and reset monthly job usage
- GET /user-tier - Tier, limits and usage for a user
- GET/POST/DELETE /subscription - Read, set or cancel a subscription
- POST /create-checkout - Stripe checkout session for a paid tier
- POST /cancel-subscription - Cancel a Stripe subscription at period end
- POST /profiles, GET /user-profile - Profiles and usage statistics
- GET/POST /user-preferences - User settings
- POST /save-content, GET /history - Content history
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import os
import structlog

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .. import __version__
from ..billing.stripe_integration import StripeBilling, StripeIntegrationError
from ..core.platforms import filter_valid_platforms
from ..core.tiers import TierId, is_known_tier, list_tiers, lookup
from ..core.usage import billing_period_start, usage_snapshot
from ..enforcement.gate import JobGate, PlatformNotAllowed, UsageLimitExceeded
from ..persistence.database import Database
from ..persistence.models import (
    ContentRecord,
    PlatformContentRecord,
    PreferencesRecord,
    ProfileRecord,
)
from ..persistence.repository import (
    ContentRepository,
    PreferencesRepository,
    ProfileRepository,
    SubscriptionRepository,
    UsageRepository,
)

logger = structlog.get_logger()

MIN_CONTENT_LENGTH = 10
TRIAL_DAYS = 7
HOURS_SAVED_PER_JOB = 3
VALID_CONTENT_TYPES = ("blog", "video", "podcast", "visual")
VALID_PROCESSING_SPEEDS = ("fast", "balanced", "quality")


# ============================================================================
# Pydantic Models
# ============================================================================

class ApiModel(BaseModel):
    """Request bodies use the front end's camelCase names."""
    model_config = ConfigDict(populate_by_name=True)


class RecordUsageRequest(ApiModel):
    """Request to count one job against the user's quota."""
    user_id: Optional[str] = Field(None, alias="userId")
    job_type: str = Field(default="content_creation", alias="jobType")
    content_title: Optional[str] = Field(None, alias="contentTitle")


class SubscriptionRequest(ApiModel):
    """Request to put a user on a tier."""
    user_id: Optional[str] = Field(None, alias="userId")
    tier: Optional[str] = None


class CheckoutRequest(ApiModel):
    """Request to start a Stripe checkout."""
    user_id: Optional[str] = Field(None, alias="userId")
    tier: Optional[str] = None


class CancelRequest(ApiModel):
    user_id: Optional[str] = Field(None, alias="userId")


class ProfileRequest(ApiModel):
    """Create or update a profile."""
    user_id: str = Field(..., alias="userId")
    email: str
    full_name: Optional[str] = Field(None, alias="fullName")
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")


class PreferencesRequest(ApiModel):
    user_id: str = Field(..., alias="userId")
    email_notifications: bool = True
    marketing_emails: bool = False
    default_content_type: str = "blog"
    default_processing_speed: str = "balanced"


class SaveContentRequest(ApiModel):
    """Generated output to store in the user's history."""
    user_id: Optional[str] = Field(None, alias="userId")
    original_content: str = Field(..., alias="originalContent")
    content_type: str = Field(default="text", alias="contentType")
    selected_platforms: List[str] = Field(default_factory=list, alias="selectedPlatforms")
    platform_content: Dict[str, str] = Field(default_factory=dict, alias="platformContent")
    hashtags: Dict[str, List[str]] = Field(default_factory=dict)
    file_name: Optional[str] = Field(None, alias="fileName")
    file_type: Optional[str] = Field(None, alias="fileType")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    stripe_configured: bool
    uptime_seconds: float


# ============================================================================
# Application State
# ============================================================================

class AppState:
    """Application state container."""

    def __init__(self, database_url: Optional[str] = None):
        self.db = Database(database_url)
        self.db.initialize()

        self.profiles = ProfileRepository(self.db)
        self.subscriptions = SubscriptionRepository(self.db)
        self.usage = UsageRepository(self.db)
        self.content = ContentRepository(self.db)
        self.preferences = PreferencesRepository(self.db)

        self.gate = JobGate(self.subscriptions, self.usage)
        self.billing = StripeBilling()
        self.start_time = datetime.now(timezone.utc)


app_state: Optional[AppState] = None


# ============================================================================
# Application Factory
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global app_state
    logger.info("contentmux_starting", version=__version__)
    app_state = AppState(os.environ.get("DATABASE_URL"))
    yield
    app_state.db.close()
    logger.info("contentmux_stopping")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="ContentMux",
        description="""
# ContentMux API

Turn one piece of content into platform-ready posts for Twitter, LinkedIn,
Instagram, Facebook, YouTube and TikTok.

## Features
- **Tiers**: trial, basic, pro, business and enterprise plans
- **Usage limits**: monthly job quotas, enforced on every job
- **Billing**: Stripe checkout and cancellation
- **History**: saved content with per-platform output and hashtags
        """,
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(UsageLimitExceeded, usage_limit_handler)
    application.add_exception_handler(PlatformNotAllowed, platform_not_allowed_handler)
    application.add_exception_handler(StripeIntegrationError, stripe_error_handler)

    return application


# ============================================================================
# Error Handlers
# ============================================================================

async def usage_limit_handler(request: Request, exc: UsageLimitExceeded) -> JSONResponse:
    result = exc.result
    suggested = result.suggested_tier
    return JSONResponse(
        status_code=403,
        content={
            "error": "Usage limit exceeded",
            "message": str(exc),
            "usage": result.usage.to_dict(),
            "tier": result.tier.tier_id.value,
            "suggestedTier": suggested.tier_id.value if suggested else None,
            "requiresUpgrade": True,
        },
    )


async def platform_not_allowed_handler(request: Request, exc: PlatformNotAllowed) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={
            "error": "Platform not available on current plan",
            "message": str(exc),
            "tier": exc.tier.tier_id.value,
            "deniedPlatforms": [p.value for p in exc.denied],
            "suggestedTier": exc.suggested_tier.tier_id.value if exc.suggested_tier else None,
            "requiresUpgrade": True,
        },
    )


async def stripe_error_handler(request: Request, exc: StripeIntegrationError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"error": "Payment provider error", "details": str(exc)},
    )


app = create_app()


# ============================================================================
# Dependencies
# ============================================================================

def get_state() -> AppState:
    """Get application state."""
    if app_state is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return app_state


def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """Verify API key."""
    expected = os.environ.get("API_KEY", "dev-key-change-in-production")
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return x_api_key


def require_user_id(user_id: Optional[str]) -> str:
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    return user_id


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(state: AppState = Depends(get_state)):
    """Health check endpoint."""
    uptime = (datetime.now(timezone.utc) - state.start_time).total_seconds()
    return HealthResponse(
        status="healthy",
        version=__version__,
        stripe_configured=state.billing.is_available,
        uptime_seconds=uptime,
    )


@app.get("/tiers", tags=["Pricing"])
async def get_tiers():
    """Pricing table: every tier with its limits and features."""
    return {"tiers": [t.to_dict() for t in list_tiers()]}


@app.get("/usage", tags=["Usage"])
async def get_usage(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Jobs used and remaining in the current billing period."""
    user_id = require_user_id(user_id)
    result = state.gate.check(user_id)

    return {
        "usage": result.usage.to_dict(),
        "tier": result.tier.tier_id.value,
        "tierInfo": result.tier.to_dict(),
        "success": True,
    }


@app.post("/usage", tags=["Usage"])
async def record_usage(
    request: RecordUsageRequest,
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """
    Count one job against the user's monthly quota.

    Responds 403 with requiresUpgrade when the quota is used up.
    """
    user_id = require_user_id(request.user_id)
    result = state.gate.record_job(user_id, job_type=request.job_type)

    return {
        "usage": result.usage.to_dict(),
        "tier": result.tier.tier_id.value,
        "message": "Usage recorded successfully",
        "success": True,
    }


@app.delete("/usage", tags=["Usage"])
async def reset_usage(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Delete all of a user's usage records."""
    user_id = require_user_id(user_id)
    removed = state.gate.reset_usage(user_id)
    return {"message": "Usage reset successfully", "removed": removed, "success": True}


@app.get("/user-tier", tags=["Usage"])
async def get_user_tier(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Tier, limits, usage and period end for a user."""
    user_id = require_user_id(user_id)
    subscription = state.subscriptions.get_active(user_id)

    if subscription is not None:
        tier_value = subscription.tier
        status = subscription.status
        period_end = subscription.current_period_end
    else:
        tier_value = lookup(None).tier_id.value
        status = "active"
        period_end = None
        profile = state.profiles.get(user_id)
        if profile is not None:
            created = datetime.fromisoformat(profile.created_at)
            period_end = (created + timedelta(days=TRIAL_DAYS)).isoformat()

    tier = state.gate.resolve_tier(user_id)
    snapshot = usage_snapshot(tier.tier_id, state.gate.jobs_used(user_id))

    return {
        "tier": tier.tier_id.value,
        "storedTier": tier_value,
        "status": status,
        "tierInfo": tier.to_dict(),
        "usage": snapshot.to_dict(),
        "subscription": {
            "current_period_end": period_end,
            "is_trial": tier.tier_id == TierId.TRIAL,
        },
        "success": True,
    }


@app.get("/subscription", tags=["Subscriptions"])
async def get_subscription(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """The user's subscription row, whatever its status."""
    user_id = require_user_id(user_id)
    subscription = state.subscriptions.get(user_id)
    return {
        "subscription": subscription.to_dict() if subscription else None,
        "success": True,
    }


@app.post("/subscription", tags=["Subscriptions"])
async def set_subscription(
    request: SubscriptionRequest,
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """
    Put a user on a tier directly (no payment).

    Starts a fresh 30-day period and resets the user's usage.
    """
    if not request.user_id or not request.tier:
        raise HTTPException(status_code=400, detail="User ID and tier are required")
    if not is_known_tier(request.tier):
        raise HTTPException(status_code=400, detail="Invalid subscription tier")
    if state.profiles.get(request.user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")

    tier = lookup(request.tier)
    existed = state.subscriptions.get(request.user_id) is not None
    subscription = state.subscriptions.set_tier(request.user_id, tier.tier_id.value)
    state.gate.reset_usage(request.user_id)

    return {
        "subscription": subscription.to_dict(),
        "message": f"Successfully {'updated' if existed else 'created'} {tier.tier_id.value} subscription",
        "success": True,
    }


@app.delete("/subscription", tags=["Subscriptions"])
async def cancel_subscription_record(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Mark the user's subscription canceled immediately."""
    user_id = require_user_id(user_id)
    subscription = state.subscriptions.cancel(user_id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="No subscription found")

    return {
        "subscription": subscription.to_dict(),
        "message": "Subscription canceled successfully",
        "success": True,
    }


@app.post("/create-checkout", tags=["Billing"])
async def create_checkout(
    request: CheckoutRequest,
    origin: Optional[str] = Header(None),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Start a Stripe checkout for a paid tier."""
    if not request.user_id or not request.tier:
        raise HTTPException(status_code=400, detail="User ID and tier are required")
    try:
        state.billing.price_for(request.tier)
    except StripeIntegrationError:
        raise HTTPException(status_code=400, detail="Invalid subscription tier")

    profile = state.profiles.get(request.user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")

    customer_id = profile.stripe_customer_id
    if customer_id and state.billing.verify_customer(customer_id) is None:
        # Stored id is unusable (deleted, or from the other Stripe mode)
        state.profiles.set_stripe_customer(profile.id, None)
        customer_id = None

    session = state.billing.create_checkout_session(
        user_id=profile.id,
        email=profile.email,
        tier=request.tier,
        origin=origin or os.environ.get("APP_URL", "http://localhost:3000"),
        customer_id=customer_id,
    )
    if session.created_customer:
        state.profiles.set_stripe_customer(profile.id, session.customer_id)

    return session.to_dict()


@app.post("/cancel-subscription", tags=["Billing"])
async def cancel_subscription(
    request: CancelRequest,
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Cancel the user's Stripe subscription at the end of the period."""
    user_id = require_user_id(request.user_id)
    subscription = state.subscriptions.get(user_id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="No active subscription found")
    if not subscription.is_active:
        raise HTTPException(status_code=400, detail="Subscription is not active")
    if not subscription.stripe_subscription_id:
        raise HTTPException(status_code=400, detail="Subscription is not billed through Stripe")

    access_until = state.billing.cancel_subscription(subscription.stripe_subscription_id)
    state.subscriptions.mark_cancel_at_period_end(user_id)

    return {
        "success": True,
        "message": "Subscription canceled successfully",
        "access_until": access_until.isoformat(),
        "period_end": access_until.date().isoformat(),
    }


@app.post("/profiles", tags=["Profiles"])
async def upsert_profile(
    request: ProfileRequest,
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Create or update a user profile."""
    profile = state.profiles.upsert(ProfileRecord(
        id=request.user_id,
        email=request.email,
        full_name=request.full_name,
        avatar_url=request.avatar_url,
    ))
    return {"profile": profile.to_dict(), "success": True}


@app.get("/user-profile", tags=["Profiles"])
async def get_user_profile(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Profile details with subscription and usage statistics."""
    user_id = require_user_id(user_id)
    profile = state.profiles.get(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    subscription = state.subscriptions.get(user_id)
    tier = state.gate.resolve_tier(user_id)
    stats = state.content.get_user_stats(user_id)

    return {
        "email": profile.email,
        "full_name": profile.full_name or "",
        "avatar_url": profile.avatar_url or "",
        "created_at": profile.created_at,
        "subscription_tier": tier.name,
        "usage_limit": tier.job_limit,
        "usage_used": state.usage.credits_since(user_id, billing_period_start()),
        "total_content_jobs": stats["total_content_jobs"],
        "hours_saved": stats["total_content_jobs"] * HOURS_SAVED_PER_JOB,
        "platforms_optimized": stats["platforms_optimized"],
        "total_usage_credits": state.usage.total_credits(user_id),
        "subscription_status": subscription.status if subscription else "trial",
        "subscription_period_start": subscription.current_period_start if subscription else None,
        "subscription_period_end": subscription.current_period_end if subscription else None,
        "stripe_customer_id": profile.stripe_customer_id,
    }


@app.get("/user-preferences", tags=["Profiles"])
async def get_preferences(
    user_id: Optional[str] = Query(None, alias="userId"),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Saved preferences, or defaults."""
    user_id = require_user_id(user_id)
    return state.preferences.get(user_id).to_dict()


@app.post("/user-preferences", tags=["Profiles"])
async def save_preferences(
    request: PreferencesRequest,
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """Validate and save preferences."""
    if request.default_content_type not in VALID_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid content type")
    if request.default_processing_speed not in VALID_PROCESSING_SPEEDS:
        raise HTTPException(status_code=400, detail="Invalid processing speed")

    saved = state.preferences.upsert(PreferencesRecord(
        user_id=request.user_id,
        email_notifications=request.email_notifications,
        marketing_emails=request.marketing_emails,
        default_content_type=request.default_content_type,
        default_processing_speed=request.default_processing_speed,
    ))
    return {"message": "Preferences saved successfully", "preferences": saved.to_dict()}


@app.post("/save-content", tags=["Content"])
async def save_content(
    request: SaveContentRequest,
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """
    Store generated content in the user's history.

    The platforms must be on the user's plan and the user must have a job
    left. Saving counts one job, with one credit per platform.
    """
    user_id = require_user_id(request.user_id)

    if len(request.original_content) < MIN_CONTENT_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Text content must be at least {MIN_CONTENT_LENGTH} characters long",
        )

    platforms = filter_valid_platforms(request.selected_platforms)
    if not platforms:
        raise HTTPException(status_code=400, detail="At least one valid platform is required")

    state.gate.check_platforms(user_id, platforms)
    result = state.gate.check(user_id)
    if not result.allowed:
        raise UsageLimitExceeded(result)

    now = datetime.now(timezone.utc)
    content = ContentRecord(
        user_id=user_id,
        title=request.file_name or f"{request.content_type} - {now.date().isoformat()}",
        original_content=request.original_content,
        content_type=request.content_type,
        platforms_generated=[p.value for p in platforms],
    )
    for platform in platforms:
        text = request.platform_content.get(platform.value)
        if not text:
            continue
        content.platform_content.append(PlatformContentRecord(
            content_id=content.id,
            platform=platform.value,
            generated_text=text,
            metadata={
                "hashtags": request.hashtags.get(platform.value, []),
                "generated_at": now.isoformat(),
            },
        ))
    state.content.create(content)

    # The content is already stored; a usage failure here only logs
    try:
        state.gate.record_job(user_id, job_type="content_generation", credits=len(platforms))
    except Exception as e:
        logger.error("usage_record_failed", user_id=user_id, content_id=content.id, error=str(e))

    return {
        "success": True,
        "contentId": content.id,
        "platforms": content.platforms_generated,
        "message": "Content saved successfully",
    }


@app.get("/history", tags=["Content"])
async def get_history(
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    state: AppState = Depends(get_state),
    api_key: str = Depends(verify_api_key),
):
    """A user's saved content, newest first."""
    user_id = require_user_id(user_id)
    items = state.content.list_for_user(user_id, limit=limit, offset=offset)
    return {
        "total": state.content.count_for_user(user_id),
        "count": len(items),
        "content": [i.to_dict() for i in items],
    }


# ============================================================================
# Run
# ============================================================================

def run():
    """Run the server."""
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "contentmux.api.server:app",
        host="0.0.0.0",
        port=port,
        reload=os.environ.get("DEBUG", "false").lower() == "true",
    )


if __name__ == "__main__":
    run()
