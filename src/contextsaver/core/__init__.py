"""contextsaver core — data contract, parsing boundary and error taxonomy."""

from .errors import (
    AnalysisError,
    ConfigurationError,
    ContextSaverError,
    CoordinationError,
    DescriptorLoadError,
    InvalidRequestError,
    MissingCredentialError,
    PeerConnectionError,
    PeerError,
    PeerInvocationError,
    UnknownEntryPointError,
)
from .parsing import ParseResult, parse_structured_response
from .types import (
    AnalysisResult,
    CapabilityManifest,
    CapabilityNames,
    ConnectionSpec,
    ExpertAnalysis,
    ExpertDescriptor,
    ExpertMode,
    ExpertQuery,
    InvocationPlan,
    InvocationResult,
    PlannedCall,
    PromptDescriptor,
    Provenance,
    ResourceDescriptor,
    ToolDescriptor,
)

__all__ = [
    # Types
    "AnalysisResult",
    "CapabilityManifest",
    "CapabilityNames",
    "ConnectionSpec",
    "ExpertAnalysis",
    "ExpertDescriptor",
    "ExpertMode",
    "ExpertQuery",
    "InvocationPlan",
    "InvocationResult",
    "PlannedCall",
    "PromptDescriptor",
    "Provenance",
    "ResourceDescriptor",
    "ToolDescriptor",
    # Parsing
    "ParseResult",
    "parse_structured_response",
    # Errors
    "AnalysisError",
    "ConfigurationError",
    "ContextSaverError",
    "CoordinationError",
    "DescriptorLoadError",
    "InvalidRequestError",
    "MissingCredentialError",
    "PeerConnectionError",
    "PeerError",
    "PeerInvocationError",
    "UnknownEntryPointError",
]
