"""Custom exception classes for the voice transcription service.

This module provides a hierarchy of exceptions for better error handling
and debugging throughout the application.
"""

from typing import Optional, Any, Dict


class VoicePipelineError(Exception):
    """Base exception for all voice pipeline errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(VoicePipelineError):
    """Raised when there's a configuration issue."""
    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""

    def __init__(self, config_key: str):
        super().__init__(
            f"Missing required configuration: {config_key}",
            {"config_key": config_key}
        )


# =============================================================================
# External API Errors
# =============================================================================

class ExternalAPIError(VoicePipelineError):
    """Base exception for external API errors."""

    def __init__(
        self,
        service: str,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None
    ):
        self.service = service
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(
            f"[{service}] {message}",
            {
                "service": service,
                "status_code": status_code,
                "response_body": response_body
            }
        )


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(VoicePipelineError):
    """Raised when message persistence fails."""

    def __init__(self, operation: str, message: str, key: Optional[str] = None):
        super().__init__(
            f"Message store {operation} failed: {message}",
            {"operation": operation, "key": key}
        )


# =============================================================================
# Message Processing Errors
# =============================================================================

class MessageProcessingError(VoicePipelineError):
    """Raised when message processing fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        chat_id: Optional[str] = None
    ):
        final_details = details or {}
        if chat_id:
            final_details["chat_id"] = chat_id
        super().__init__(message, final_details)


class InvalidPayloadError(MessageProcessingError):
    """Raised when webhook payload is invalid or malformed."""

    def __init__(self, reason: str, payload: Optional[Dict] = None):
        super().__init__(
            f"Invalid webhook payload: {reason}",
            {"reason": reason, "payload_keys": list(payload.keys()) if payload else None}
        )


class MediaDownloadError(MessageProcessingError):
    """Raised when a media file cannot be fetched from WAHA."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Failed to download media: {reason}",
            {"url": url}
        )


# =============================================================================
# Voice Pipeline Stage Errors
# =============================================================================

class StageTimeoutError(VoicePipelineError):
    """Raised when a pipeline stage does not finish within its deadline."""

    def __init__(self, stage: str, timeout_ms: int):
        self.stage = stage
        self.timeout_ms = timeout_ms
        super().__init__(f"{stage} timeout ({timeout_ms}ms)")


class DownloadFailure(VoicePipelineError):
    """Raised when the deferred audio download rejects."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Voice download failed: {reason}",
            {"key": key}
        )


class TranscriptionFailure(VoicePipelineError):
    """Raised when the transcription provider call rejects."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Voice transcription failed: {reason}",
            {"key": key}
        )
