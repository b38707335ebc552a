"""Tests for the error taxonomy."""

from contextsaver.core.errors import (
    AnalysisError,
    ConfigurationError,
    ContextSaverError,
    CoordinationError,
    DescriptorLoadError,
    MissingCredentialError,
    PeerConnectionError,
    PeerError,
    PeerInvocationError,
    UnknownEntryPointError,
)


class TestStages:
    def test_configuration_errors(self):
        assert MissingCredentialError("OPENAI_API_KEY").stage == "configuration"
        assert isinstance(DescriptorLoadError("boom"), ConfigurationError)

    def test_connection_error(self):
        err = PeerConnectionError("Failed to connect to wrapped server: spawn failed")
        assert err.stage == "connection"
        assert isinstance(err, PeerError)

    def test_planner_errors(self):
        assert AnalysisError("bad json").stage == "planner"
        assert CoordinationError("bad json").stage == "planner"

    def test_invocation_error(self):
        err = PeerInvocationError("add", "boom")
        assert err.stage == "invocation"
        assert err.tool == "add"


class TestMessages:
    def test_missing_credential_names_variable(self):
        assert "OPENAI_API_KEY" in str(MissingCredentialError("OPENAI_API_KEY"))

    def test_descriptor_load(self):
        assert str(DescriptorLoadError("no such file")) == "Failed to load configuration: no such file"

    def test_analysis(self):
        assert str(AnalysisError("x")).startswith("Failed to analyze server capabilities")

    def test_coordination(self):
        assert str(CoordinationError("x")).startswith("Failed to coordinate with wrapped server")

    def test_unknown_entry_point(self):
        err = UnknownEntryPointError("other-tool")
        assert "other-tool" in str(err)
        assert isinstance(err, ContextSaverError)
