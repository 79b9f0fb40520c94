"""Voice search capture."""

from .session import VoiceCaptureSession

__all__ = ['VoiceCaptureSession']
