"""
Unit tests for submission intake: normalization and validation.
"""

from datetime import timedelta

import pytest

from clinic_placement.core.errors import ValidationError
from clinic_placement.core.placement.intake import (
    SubmissionForm,
    build_submission,
    clip,
    digits_only,
    render_notification,
)
from clinic_placement.core.placement.models import EPOCH

NOW = EPOCH + timedelta(days=20_000)


def form(**overrides) -> SubmissionForm:
    values = dict(
        parent_email="parent@example.com",
        parent_phone="+1 (555) 123-4567",
        swimmer_name="Amy Chen",
        level="Gold Performance",
        preferences=[{"location": "PoolA", "selections": ["Mon 9AM"]}],
    )
    values.update(overrides)
    return SubmissionForm(**values)


def test_clip():
    assert clip(None) == ""
    assert clip("  hi  ") == "hi"
    assert clip("x" * 500) == "x" * 200
    assert clip(42, 1) == "4"


def test_digits_only():
    assert digits_only("+1 (555) 123-4567") == "15551234567"
    assert digits_only(None) == ""


class TestBuildSubmission:

    def test_defaults_season(self):
        submission = build_submission(form(), "Winter", NOW)
        assert submission.season == "Winter"
        assert submission.submitted_at == NOW

    def test_explicit_season_wins(self):
        assert build_submission(form(season=" Spring "), "Winter", NOW).season == "Spring"

    def test_id_follows_swimmer_identity(self):
        a = build_submission(form(), "Winter", NOW)
        b = build_submission(form(swimmer_name=" AMY chen", parent_email="PARENT@example.com"), "Winter", NOW)
        assert a.id == b.id

    def test_truncates_long_fields(self):
        submission = build_submission(
            form(
                swimmer_name="n" * 300,
                preferences=[{"location": "l" * 300, "selections": ["s" * 300]}],
            ),
            "Winter",
            NOW,
        )
        assert len(submission.swimmer_name) == 120
        assert len(submission.preferences[0].location) == 120
        assert len(submission.preferences[0].selections[0]) == 160

    def test_limits_preference_groups_and_selections(self):
        groups = [{"location": f"Pool{i}", "selections": [str(j) for j in range(250)]} for i in range(120)]
        submission = build_submission(form(preferences=groups), "Winter", NOW)
        assert len(submission.preferences) == 100
        assert len(submission.preferences[0].selections) == 200

    def test_ignores_malformed_selections(self):
        submission = build_submission(
            form(preferences=[{"location": "PoolA", "selections": "Mon 9AM"}, "junk"]),
            "Winter",
            NOW,
        )
        assert [(p.location, p.selections) for p in submission.preferences] == [("PoolA", [])]

    @pytest.mark.parametrize("email", ["plain", "a@b", "a b@c.d", "@c.d", ""])
    def test_rejects_bad_emails(self, email):
        with pytest.raises(ValidationError, match="parent_email"):
            build_submission(form(parent_email=email), "Winter", NOW)

    @pytest.mark.parametrize("phone", ["123456789", "1234567890123456", None])
    def test_rejects_bad_phone_lengths(self, phone):
        with pytest.raises(ValidationError, match="parent_phone"):
            build_submission(form(parent_phone=phone), "Winter", NOW)

    def test_rejects_unknown_level(self):
        with pytest.raises(ValidationError, match="unknown level 'Diamond'"):
            build_submission(form(level="Diamond"), "Winter", NOW)


def test_honeypot_detection():
    assert form(website="x").is_spam
    assert not form(website="").is_spam
    assert not form().is_spam


def test_render_notification():
    submission = build_submission(form(), "Winter", NOW)

    subject, body = render_notification(submission)

    assert subject == "New Activity Submission"
    assert "Parent phone: 15551234567" in body
    assert "Level: Gold Performance" in body
    assert "  PoolA: Mon 9AM" in body
