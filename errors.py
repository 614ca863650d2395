"""
errors.py — Error taxonomy for the refresh pipeline and its adapters.
"""


class JobAggregatorError(Exception):
    """Base class for all aggregator errors."""


class ConfigurationError(JobAggregatorError):
    """Settings or the category plan are malformed. Fatal at startup."""


class UpstreamFetchError(JobAggregatorError):
    """The job-search API failed for a single category."""

    def __init__(self, category: str, message: str):
        super().__init__(f"{category}: {message}")
        self.category = category
        self.message = message


class PipelineError(JobAggregatorError):
    """A refresh run failed after fetching. The published snapshot is unchanged."""


class RefreshInProgressError(JobAggregatorError):
    """A refresh was triggered while another one is still running."""
