"""
Frame Enhancer

Runs an enhancement profile's fixed, ordered list of filter stages over one
frame and reports what happened.

Usage:
    pipeline = FilterPipeline()
    enhanced, report = pipeline.enhance(buffer, FilterParams(sharpness=150), "auto")
    print(report.profile, report.resolution_increase)

The pipeline keeps no per-frame state, so one instance can serve many threads.
"""

import time
from collections import namedtuple
from dataclasses import dataclass, field
from functools import partial
from typing import Optional, Tuple

import cv2

from denoise_filters import (
    adaptive_noise_reduction, bilateral_denoise, median_denoise, non_local_means_denoise,
)
from detail_estimator import resolution_increase_percent
from enhancement_profile import AUTO, EnhancementProfile, FilterParams, resolve_profile
from errors import StageFailure
from logger import log_frame, log_stage
from model_selector import select_profile
from pixel_buffer import PixelBuffer
from portrait_filters import eye_highlight, selective_sharpen, skin_smoothing, skin_tone_warm
from sharpen_filters import (
    detail_map_boost, edge_preserving_sharpen, high_pass_sharpen, micro_contrast_detail,
    natural_sharpen, sobel_edge_boost, superres_sharpen, unsharp_mask,
)
from tone_filters import (
    brightness_boost, brightness_contrast, color_differentiation, gamma_correction,
    grayscale, green_tint,
)

# name: shown in reports/logs, apply: PixelBuffer -> PixelBuffer,
# enabled: guard; disabled stages are skipped entirely
Stage = namedtuple("Stage", ["name", "apply", "enabled"])


def _sharpen_strength(params, divisor=100.0):
    return (params.sharpness - 100.0) / divisor


def _standard_stages(params: FilterParams):
    return [
        Stage("BrightnessContrast",
              partial(brightness_contrast, brightness=params.brightness, contrast=params.contrast),
              True),
        Stage("UnsharpMask",
              partial(unsharp_mask, strength=_sharpen_strength(params)),
              params.sharpness > 100),
        Stage("BilateralDenoise",
              partial(bilateral_denoise, strength=params.noise_reduction / 100.0, radius=3),
              params.noise_reduction > 0),
    ]


def _super_resolution_stages(params: FilterParams):
    return [
        Stage("BrightnessContrast",
              partial(brightness_contrast, brightness=100, contrast=params.contrast),
              True),
        Stage("HighPassSharpen",
              partial(high_pass_sharpen, strength=_sharpen_strength(params)),
              params.sharpness > 100),
        Stage("SobelEdgeBoost", sobel_edge_boost, True),
        Stage("MicroContrastDetail", partial(micro_contrast_detail, window=5), True),
    ]


def _night_vision_stages(params: FilterParams):
    return [
        Stage("Grayscale", grayscale, True),
        Stage("BrightnessBoost", partial(brightness_boost, percent=params.brightness * 1.5), True),
        Stage("GreenTint", green_tint, True),
        Stage("MedianDenoise", partial(median_denoise, noise_reduction=params.noise_reduction), True),
    ]


def _portrait_stages(params: FilterParams):
    return [
        Stage("SkinSmoothing", skin_smoothing, True),
        Stage("EyeHighlight", eye_highlight, True),
        Stage("SelectiveSharpen",
              partial(selective_sharpen, strength=_sharpen_strength(params, 200.0)),
              params.sharpness > 100),
        Stage("SkinToneWarm", skin_tone_warm, True),
    ]


def _ultra_detail_stages(params: FilterParams):
    return [
        Stage("DetailMapBoost", detail_map_boost, True),
        Stage("MicroContrastDetail", partial(micro_contrast_detail, window=5), True),
        Stage("NaturalSharpen", natural_sharpen, True),
        Stage("ColorDifferentiation", color_differentiation, True),
        Stage("AdaptiveNoiseReduction", adaptive_noise_reduction, True),
    ]


def _hybrid_stages(params: FilterParams):
    return [
        Stage("NonLocalMeansDenoise",
              partial(non_local_means_denoise, strength=params.noise_reduction / 100.0),
              params.noise_reduction > 0),
        Stage("SuperResolutionSharpen", partial(superres_sharpen, sharpness=params.sharpness), True),
        Stage("EdgePreservingSharpen",
              partial(edge_preserving_sharpen, strength=params.sharpness / 100.0),
              True),
    ]


PROFILE_STAGES = {
    EnhancementProfile.STANDARD: _standard_stages,
    EnhancementProfile.SUPER_RESOLUTION: _super_resolution_stages,
    EnhancementProfile.NIGHT_VISION: _night_vision_stages,
    EnhancementProfile.PORTRAIT: _portrait_stages,
    EnhancementProfile.ULTRA_DETAIL: _ultra_detail_stages,
    EnhancementProfile.HYBRID: _hybrid_stages,
}

_missing = set(EnhancementProfile) - set(PROFILE_STAGES)
if _missing:
    raise RuntimeError(f"profiles without a stage list: {sorted(p.name for p in _missing)}")


@dataclass
class ProcessingReport:
    """Per-call summary handed back to the caller for display."""
    profile: str
    model_name: str
    processing_time_ms: int
    resolution_increase: int
    stages: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "profile": self.profile,
            "modelName": self.model_name,
            "processingTime": self.processing_time_ms,
            "resolutionIncrease": self.resolution_increase,
            "stages": list(self.stages),
        }


class FilterPipeline:
    """
    Stage runner for the enhancement profiles.

    Each stage reads an immutable PixelBuffer and returns a new one, so a
    failure halfway leaves nothing half-written for the caller to see.
    """

    def __init__(self, finishing_gamma: Optional[float] = None):
        """
        :param finishing_gamma: optional gamma applied after the profile stages.
                                None or 1.0 disables it.
        """
        self.finishing_gamma = finishing_gamma

    def resolve(self, buffer: PixelBuffer, profile=AUTO) -> EnhancementProfile:
        """Resolve a selector ("auto", a name, or an enum member) to a profile."""
        resolved = resolve_profile(profile)
        if resolved is None:
            resolved = select_profile(buffer)
        return resolved

    def stages_for(self, profile: EnhancementProfile, params: FilterParams):
        stages = PROFILE_STAGES[profile](params)
        if self.finishing_gamma is not None and self.finishing_gamma != 1.0:
            stages.append(Stage("GammaCorrection",
                                partial(gamma_correction, gamma=self.finishing_gamma),
                                True))
        return stages

    def enhance(self, buffer: PixelBuffer, params: FilterParams = None, profile=AUTO):
        """
        Enhance one frame.

        Returns:
            (PixelBuffer, ProcessingReport)

        Raises:
            UnknownProfile: explicit profile name not recognised (nothing runs)
            StageFailure: a stage produced malformed output
        """
        if not isinstance(buffer, PixelBuffer):
            raise TypeError(f"expected PixelBuffer, got {type(buffer).__name__}")
        params = params or FilterParams()

        resolved = self.resolve(buffer, profile)
        start = time.perf_counter()

        current = buffer
        executed = []
        for stage in self.stages_for(resolved, params):
            if not stage.enabled:
                log_stage(resolved.value, stage.name, 0.0, skipped=True)
                continue
            stage_start = time.perf_counter()
            current = self._run_stage(stage, current)
            log_stage(resolved.value, stage.name, (time.perf_counter() - stage_start) * 1000.0)
            executed.append(stage.name)

        elapsed_ms = int(round((time.perf_counter() - start) * 1000.0))
        report = ProcessingReport(
            profile=resolved.value,
            model_name=resolved.label,
            processing_time_ms=elapsed_ms,
            resolution_increase=resolution_increase_percent(current, buffer),
            stages=tuple(executed),
        )
        log_frame(report, current.width, current.height)
        return current, report

    def _run_stage(self, stage: Stage, buffer: PixelBuffer) -> PixelBuffer:
        try:
            result = stage.apply(buffer)
        except StageFailure as e:
            raise StageFailure(e.detail, stage=stage.name) from e
        except (ValueError, FloatingPointError, cv2.error) as e:
            raise StageFailure(str(e), stage=stage.name) from e

        if not isinstance(result, PixelBuffer):
            raise StageFailure(f"returned {type(result).__name__}", stage=stage.name)
        if (result.width, result.height) != (buffer.width, buffer.height):
            raise StageFailure(
                f"changed dimensions {buffer.width}x{buffer.height} -> "
                f"{result.width}x{result.height}",
                stage=stage.name,
            )
        return result
