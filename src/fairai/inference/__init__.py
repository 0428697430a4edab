"""Inference module: request submission and conversations."""

from fairai.inference.submit import InferenceSubmitter, RequestConfig, SubmissionResult

__all__ = [
    "InferenceSubmitter",
    "RequestConfig",
    "SubmissionResult",
]
