class PipelineError(Exception):
    """Base exception for itinerary pipeline failures."""


class ProviderCallFailed(PipelineError):
    """Raised inside a photo provider when a call fails (HTTP error, timeout, malformed payload)."""


class GenerativeResponseInvalid(PipelineError, ValueError):
    """Raised when the generative text response cannot be turned into a day plan."""


class NoItineraryProducible(PipelineError):
    """Raised when neither the generative nor the fallback path yields a usable draft."""
