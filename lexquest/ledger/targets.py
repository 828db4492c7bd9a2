"""
Daily target collaborators.

The rollover engine asks a target provider for each closed day. Providers may
fail (settings unreadable, store offline); the engine then falls back to the
last known target or the configured default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from lexquest.stores import SettingsStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LexProfile:
    id: str
    name: str
    daily_target: int


# 10 Lex per minute of study
LEX_PROFILES = {
    "light": LexProfile("light", "Spare moments (15 min)", 150),
    "moderate": LexProfile("moderate", "Foundations (1 hour)", 600),
    "hard": LexProfile("hard", "Exam prep (3 hours)", 1800),
    "intensive": LexProfile("intensive", "Final push (5 hours)", 3000),
    "extreme": LexProfile("extreme", "Full commitment (8 hours)", 4800),
}

DEFAULT_PROFILE_ID = "moderate"
CUSTOM_PROFILE_ID = "custom"

SETTING_PROFILE = "lex_profile"
SETTING_CUSTOM_TARGET = "lex_custom_target"


class TargetProvider(Protocol):
    def get_daily_target(self, day: date) -> int: ...


class FixedTargetProvider:
    """Same target every day."""

    def __init__(self, target: int):
        self.target = int(target)

    def get_daily_target(self, day: date) -> int:
        return self.target


class ProfileTargetProvider:
    """
    Target from the user's selected Lex profile, stored in system settings.

    A custom profile reads its own value; an unknown profile id falls back to
    the default profile.
    """

    def __init__(self, settings: SettingsStore, default_profile: str = DEFAULT_PROFILE_ID):
        self.settings = settings
        self.default_profile = default_profile

    def profile_id(self) -> str:
        return self.settings.get(SETTING_PROFILE) or self.default_profile

    def get_daily_target(self, day: date) -> int:
        profile_id = self.profile_id()
        if profile_id == CUSTOM_PROFILE_ID:
            raw = self.settings.get(SETTING_CUSTOM_TARGET)
            try:
                return max(0, int(raw))
            except (TypeError, ValueError):
                logger.warning("[TARGET] Invalid custom target %r, using default profile", raw)
                return LEX_PROFILES[self.default_profile].daily_target

        profile = LEX_PROFILES.get(profile_id)
        if profile is None:
            logger.warning("[TARGET] Unknown profile %r, using %s", profile_id, self.default_profile)
            profile = LEX_PROFILES[self.default_profile]
        return profile.daily_target

    def select(self, profile_id: str, custom_target: Optional[int] = None):
        if profile_id != CUSTOM_PROFILE_ID and profile_id not in LEX_PROFILES:
            raise ValueError(f"Unknown Lex profile: {profile_id}")
        if profile_id == CUSTOM_PROFILE_ID:
            if custom_target is None or custom_target < 0:
                raise ValueError("Custom profile needs a non-negative target")
            self.settings.set(SETTING_CUSTOM_TARGET, str(int(custom_target)))
        self.settings.set(SETTING_PROFILE, profile_id)
