from enhancer.pipeline.exceptions import UpstreamError


class AnalysisError(UpstreamError):
    """Raised when the analysis AI returns an unusable response."""

    code = "analysis_error"


class AnalysisNetworkError(AnalysisError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""

    code = "analysis_network_error"
