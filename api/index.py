"""
CONTENTMUX - Vercel Serverless API

Wraps the FastAPI application for serverless deployment.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from mangum import Mangum

from contentmux.api.server import app

handler = Mangum(app, lifespan="auto")
