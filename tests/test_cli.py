"""
Tests for the CLI
"""

import pytest
from contentmux.cli import main


class TestTiersCommand:

    def test_lists_all_tiers(self, capsys):
        main(["tiers"])

        out = capsys.readouterr().out
        for name in ("Free Trial", "Basic Plan", "Pro Plan", "Business Plan", "Enterprise Plan"):
            assert name in out
        assert "Jobs/month: Unlimited" in out


class TestCheckCommand:

    def test_allowed(self, capsys):
        main(["check", "pro", "99"])

        out = capsys.readouterr().out
        assert "Jobs remaining: 1" in out
        assert "Allowed" in out

    def test_limit_reached(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "basic", "20"])

        assert exc_info.value.code == 2
        assert "Limit reached" in capsys.readouterr().out

    def test_unknown_tier_uses_trial(self, capsys):
        main(["check", "gold", "0"])

        out = capsys.readouterr().out
        assert "unknown tier 'gold'" in out
        assert "Tier: Free Trial" in out

    def test_negative_usage_rejected(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "trial", "-1"])

        assert exc_info.value.code == 1
