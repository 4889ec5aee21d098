"""
Enhancement Profiles

The closed set of named filter combinations and the knobs that parameterise
them. Profile "models" are labels for hand-written filter chains, not
trained networks.
"""

from dataclasses import dataclass
from enum import Enum

from errors import UnknownProfile

AUTO = "auto"


class EnhancementProfile(Enum):
    STANDARD = "standard"
    SUPER_RESOLUTION = "superresolution"
    NIGHT_VISION = "nightvision"
    PORTRAIT = "portrait"
    HYBRID = "hybrid"
    ULTRA_DETAIL = "ultradetail"

    @property
    def label(self) -> str:
        """Human-readable model name shown next to the enhanced frame."""
        return PROFILE_LABELS[self]

    @property
    def is_expensive(self) -> bool:
        """Profiles that run non-local means and belong on a background worker."""
        return self in EXPENSIVE_PROFILES


PROFILE_LABELS = {
    EnhancementProfile.STANDARD: "Standard Enhancement",
    EnhancementProfile.SUPER_RESOLUTION: "Super Resolution CNN",
    EnhancementProfile.NIGHT_VISION: "Night Vision",
    EnhancementProfile.PORTRAIT: "Portrait Enhancement",
    EnhancementProfile.HYBRID: "Hybrid AI Enhancement",
    EnhancementProfile.ULTRA_DETAIL: "200MP Ultra Detail",
}

EXPENSIVE_PROFILES = frozenset({EnhancementProfile.HYBRID})

# Names used by the capture UI
PROFILE_ALIASES = {
    "superres": EnhancementProfile.SUPER_RESOLUTION,
    "night": EnhancementProfile.NIGHT_VISION,
    "200mp": EnhancementProfile.ULTRA_DETAIL,
}


def _normalize(name: str) -> str:
    return name.strip().lower().replace("_", "").replace("-", "").replace(" ", "")


def resolve_profile(name):
    """
    Map a profile selector to an EnhancementProfile.

    Returns None for "auto" (caller must run the model selector).
    Unrecognised names raise UnknownProfile instead of falling back to a default.
    """
    if isinstance(name, EnhancementProfile):
        return name
    if not isinstance(name, str):
        raise UnknownProfile(name)

    key = _normalize(name)
    if key == AUTO:
        return None
    for profile in EnhancementProfile:
        if profile.value == key:
            return profile
    if key in PROFILE_ALIASES:
        return PROFILE_ALIASES[key]
    raise UnknownProfile(name)


@dataclass(frozen=True)
class FilterParams:
    """
    Percentage knobs. 100 is neutral for sharpness/brightness/contrast,
    0 is neutral for noise_reduction. Values are deliberately not validated:
    every stage clamps what it writes.
    """
    sharpness: float = 100.0
    brightness: float = 100.0
    contrast: float = 100.0
    noise_reduction: float = 0.0

    @classmethod
    def from_dict(cls, data):
        """Build from a wire mapping (camelCase or snake_case keys)."""
        data = data or {}
        defaults = cls()
        noise = data.get("noise_reduction", data.get("noiseReduction", defaults.noise_reduction))
        return cls(
            sharpness=float(data.get("sharpness", defaults.sharpness)),
            brightness=float(data.get("brightness", defaults.brightness)),
            contrast=float(data.get("contrast", defaults.contrast)),
            noise_reduction=float(noise),
        )

    def to_dict(self) -> dict:
        return {
            "sharpness": self.sharpness,
            "brightness": self.brightness,
            "contrast": self.contrast,
            "noiseReduction": self.noise_reduction,
        }
