"""Closed enumerations shared by models, schemas and the reward engine.

External clients send free-form strings. Every enum here resolves an
unrecognized (or differently cased) value to a fallback member instead of
raising, so a new platform or reason from the extension never rejects a
submission.
"""

from __future__ import annotations

import enum


class _LenientEnum(str, enum.Enum):
    """String enum whose constructor never fails.

    Subclasses name their fallback member's value in ``_fallback_value``.
    """

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        return cls(cls._fallback_value)


class Platform(_LenientEnum):
    midjourney = "midjourney"
    suno = "suno"
    udio = "udio"
    runway = "runway"
    pika = "pika"
    dalle = "dalle"
    flux = "flux"
    leonardo = "leonardo"
    stable_diffusion = "stable-diffusion"
    higgsfield = "higgsfield"
    chatgpt = "chatgpt"
    claude = "claude"
    unknown = "unknown"

    _fallback_value = enum.nonmember("unknown")


class ContributorTier(_LenientEnum):
    explorer = "explorer"
    curator = "curator"
    tastemaker = "tastemaker"
    oracle = "oracle"

    _fallback_value = enum.nonmember("explorer")


class OptimizationMode(_LenientEnum):
    manual = "manual"
    enhance = "enhance"
    expand = "expand"
    style = "style"
    params = "params"
    crazy = "crazy"
    unknown = "unknown"

    _fallback_value = enum.nonmember("unknown")


class RejectionReason(_LenientEnum):
    poor_quality = "poor-quality"
    wrong_style = "wrong-style"
    doesnt_match = "doesnt-match"
    too_generic = "too-generic"
    technical_issue = "technical-issue"
    other = "other"

    _fallback_value = enum.nonmember("other")


class LikeReason(_LenientEnum):
    great_style = "great-style"
    perfect_colors = "perfect-colors"
    matches_intent = "matches-intent"
    unique = "unique"
    technical_quality = "technical-quality"
    other = "other"

    _fallback_value = enum.nonmember("other")


def map_platform(raw) -> Platform:
    """Case-insensitive platform lookup; anything unrecognized is ``unknown``."""
    return Platform(raw)
