from .core import (
    CONTINUE,
    EXIT_BAD_CONFIG_FILE,
    EXIT_CANCELLED,
    EXIT_CONFIG_ERROR,
    EXIT_JOB_FAILED,
    EXIT_OK,
    Abort,
    Continue,
    InvocationContext,
    JobAction,
    Pipeline,
    PipelineResult,
    StepOutcome,
    ValidationStep,
)
from .steps import EnsureOutputDirectories, RequireJobName, default_steps

__all__ = [
    "CONTINUE",
    "EXIT_BAD_CONFIG_FILE",
    "EXIT_CANCELLED",
    "EXIT_CONFIG_ERROR",
    "EXIT_JOB_FAILED",
    "EXIT_OK",
    "Abort",
    "Continue",
    "EnsureOutputDirectories",
    "InvocationContext",
    "JobAction",
    "Pipeline",
    "PipelineResult",
    "RequireJobName",
    "StepOutcome",
    "ValidationStep",
    "default_steps",
]
