"""
Custom exception hierarchy for StyleMatch.

Provides a structured exception hierarchy for different error scenarios:
- AppException: Base for all application errors
- ConfigError: Configuration-related errors
- EncoderError: Embedding provider and image errors
- TotalAnalysisFailure: No usable query vector could be produced
- DatabaseError: Vector record storage/retrieval errors
- ValidationError: Input validation errors

Each exception includes:
- Descriptive message
- Optional error code for programmatic handling
- Optional context dictionary for debugging

Example:
    >>> from stylematch.utils.exceptions import ProviderTimeoutError
    >>> raise ProviderTimeoutError("visual slot timed out", slot="visual", timeout=30.0)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


# ============================================
# Base Exception
# ============================================


class AppException(Exception):
    """
    Base exception for all StyleMatch application errors.

    All custom exceptions inherit from this class, allowing:
    - Catch-all handling of application errors
    - Consistent error structure across the app
    - Error code and context support

    Attributes:
        message: Human-readable error description.
        code: Optional error code for programmatic handling.
        context: Optional dictionary with debugging context.

    Example:
        >>> try:
        ...     raise AppException("Something went wrong", code="APP_001")
        ... except AppException as e:
        ...     print(f"Error {e.code}: {e.message}")
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            code: Optional error code (e.g., "CONFIG_001").
            context: Optional dict with additional debugging info.
        """
        self.message = message
        self.code = code or self._default_code()
        self.context = context or {}
        super().__init__(self.message)

    def _default_code(self) -> str:
        """Generate default error code from class name."""
        # CamelCase -> UPPER_SNAKE_CASE
        name = self.__class__.__name__
        code = ""
        for i, char in enumerate(name):
            if char.isupper() and i > 0:
                code += "_"
            code += char.upper()
        return code

    def __str__(self) -> str:
        """String representation with code if available."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigError(AppException):
    """
    Base exception for configuration-related errors.

    Raised when there are issues with:
    - Loading configuration files
    - Parsing YAML
    - Validating configuration values
    """

    pass


class ConfigFileNotFoundError(ConfigError):
    """
    Raised when a required configuration file is not found.

    Example:
        >>> raise ConfigFileNotFoundError(
        ...     "Configuration file not found",
        ...     path="/path/to/config.yaml"
        ... )
    """

    def __init__(
        self,
        message: str = "Configuration file not found",
        path: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(message, code="CONFIG_FILE_NOT_FOUND", context=context, **kwargs)


class ConfigValidationError(ConfigError):
    """
    Raised when configuration values fail validation.

    Example:
        >>> raise ConfigValidationError(
        ...     "weight profile must have a positive total",
        ...     field="weights",
        ...     value={"visual": 0.0}
        ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = value
        super().__init__(message, code="CONFIG_VALIDATION", context=context, **kwargs)


# ============================================
# Encoder / Provider Errors
# ============================================


class EncoderError(AppException):
    """
    Base exception for embedding generation errors.

    Raised when there are issues with:
    - Calls to the embedding provider
    - Image loading and validation
    - Returned vector shape or content
    """

    pass


class EmbeddingProviderError(EncoderError):
    """
    Raised when the embedding provider call fails.

    Example:
        >>> raise EmbeddingProviderError(
        ...     "Vertex AI API error",
        ...     status_code=503
        ... )
    """

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        code = kwargs.pop("code", "PROVIDER_ERROR")
        if status_code:
            context["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, code=code, context=context, **kwargs)

    @property
    def retriable(self) -> bool:
        """Return True for rate-limit and transient server errors."""
        return self.status_code in (429, 500, 503)


class ProviderTimeoutError(EmbeddingProviderError):
    """Raised when a single provider call exceeds its time budget."""

    def __init__(
        self,
        message: str = "Embedding provider call timed out",
        slot: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if slot:
            context["slot"] = slot
        if timeout is not None:
            context["timeout"] = timeout
        super().__init__(message, code="PROVIDER_TIMEOUT", context=context, **kwargs)

    @property
    def retriable(self) -> bool:
        """A timed-out attempt may succeed on retry."""
        return True


class ProviderResponseError(EmbeddingProviderError):
    """Raised when the provider answers with an unusable payload."""

    def __init__(
        self,
        message: str = "Invalid response from embedding provider",
        **kwargs,
    ) -> None:
        super().__init__(message, code="PROVIDER_RESPONSE", **kwargs)


class SlotGenerationError(EncoderError):
    """
    Records why one vector slot could not be generated.

    Never raised through the matcher or ranker; the generator stores it
    on the slot's result so callers can inspect partial success.

    Example:
        >>> SlotGenerationError("style slot failed", slot="style", cause="timeout")
    """

    def __init__(
        self,
        message: str = "Vector slot generation failed",
        slot: Optional[str] = None,
        cause: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if slot:
            context["slot"] = slot
        if cause:
            context["cause"] = cause
        super().__init__(message, code="SLOT_GENERATION", context=context, **kwargs)


class ImageProcessingError(EncoderError):
    """
    Raised when an image reference cannot be loaded or is too large.

    Example:
        >>> raise ImageProcessingError(
        ...     "Image exceeds 10MB limit",
        ...     image_path="/path/to/image.jpg"
        ... )
    """

    def __init__(
        self,
        message: str = "Failed to process image",
        image_path: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if image_path:
            context["image_path"] = image_path
        super().__init__(message, code="IMAGE_PROCESS", context=context, **kwargs)


# ============================================
# Analysis Errors
# ============================================


class TotalAnalysisFailure(AppException):
    """
    Raised when neither the visual nor the style vector could be generated.

    Without either of them no hybrid vector exists and the upload cannot
    be matched. Callers should surface "analysis failed, please retry",
    which is distinct from an empty match list.

    Attributes:
        failed_slots: Names of the slots that failed.
    """

    def __init__(
        self,
        message: str = "Image analysis failed, please retry",
        failed_slots: Optional[List[str]] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        self.failed_slots = list(failed_slots or [])
        if self.failed_slots:
            context["failed_slots"] = self.failed_slots
        super().__init__(message, code="ANALYSIS_FAILED", context=context, **kwargs)


# ============================================
# Database Errors
# ============================================


class DatabaseError(AppException):
    """
    Base exception for database/storage errors.

    Raised when there are issues with:
    - ChromaDB operations
    - Vector record storage/retrieval
    """

    pass


class VectorStoreError(DatabaseError):
    """Raised when a vector record store operation fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        collection_name: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        code = kwargs.pop("code", "VECTOR_STORE")
        if collection_name:
            context["collection_name"] = collection_name
        super().__init__(message, code=code, context=context, **kwargs)


class EmbeddingDimensionError(VectorStoreError):
    """
    Raised when a vector slot's dimensions don't match expected values.

    Example:
        >>> raise EmbeddingDimensionError(
        ...     "visual dimension mismatch",
        ...     slot="visual",
        ...     expected=1408,
        ...     actual=512
        ... )
    """

    def __init__(
        self,
        message: str = "Embedding dimension mismatch",
        slot: Optional[str] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if slot:
            context["slot"] = slot
        if expected:
            context["expected_dim"] = expected
        if actual:
            context["actual_dim"] = actual
        self.expected_dim = expected
        self.actual_dim = actual
        super().__init__(message, code="EMBEDDING_DIMENSION", context=context, **kwargs)


# ============================================
# Validation Errors
# ============================================


class ValidationError(AppException):
    """
    Base exception for input validation errors.

    Raised when user input or data doesn't meet requirements.
    """

    pass


class InvalidQueryError(ValidationError):
    """
    Raised when a match request carries no usable query vector.

    Example:
        >>> raise InvalidQueryError("Query vector set is empty")
    """

    def __init__(
        self,
        message: str = "Invalid query",
        **kwargs,
    ) -> None:
        super().__init__(message, code="INVALID_QUERY", **kwargs)
