"""
Error taxonomy for discovery and coordination.

Every fatal error carries the stage it happened in and a message naming the
underlying cause, so callers can tell "can't reach peer" from "can't reach
planner" from "bad descriptor".
"""


class ContextSaverError(Exception):
    stage: str = "general"

    def __init__(self, message: str, stage: str | None = None):
        self.message = message
        if stage:
            self.stage = stage
        super().__init__(message)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(ContextSaverError):
    stage = "configuration"


class MissingCredentialError(ConfigurationError):
    def __init__(self, env_var: str | None):
        self.env_var = env_var
        name = env_var or "planner API key"
        super().__init__(f"{name} environment variable is required")


class DescriptorLoadError(ConfigurationError):
    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Failed to load configuration: {cause}")


# ---------------------------------------------------------------------------
# Peer connection
# ---------------------------------------------------------------------------

class PeerError(ContextSaverError):
    stage = "connection"


class PeerConnectionError(PeerError):
    pass


class PeerInvocationError(PeerError):
    """A single tool call failed at the peer. Recovered per call."""

    stage = "invocation"

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(message)


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class AnalysisError(ContextSaverError):
    stage = "planner"

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Failed to analyze server capabilities: {cause}")


class CoordinationError(ContextSaverError):
    stage = "planner"

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Failed to coordinate with wrapped server: {cause}")


# ---------------------------------------------------------------------------
# Caller
# ---------------------------------------------------------------------------

class InvalidRequestError(ContextSaverError):
    stage = "request"


class UnknownEntryPointError(InvalidRequestError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")
