"""Cloud provider clients used by the orchestrator."""

from .aws import AWSProvider

__all__ = ["AWSProvider"]
