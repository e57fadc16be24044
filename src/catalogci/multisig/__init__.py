"""Multisig, signer, and access-key classification and telemetry."""

from catalogci.multisig.collector import AccessKey, Multisig, MultisigsCollector, Signer, SignerKeys
from catalogci.multisig.metrics import MetricResource, MetricSeriesPoint, generate_all_metrics, host_from_url
from catalogci.multisig.sink import DatadogSink, SubmissionError, SubmissionResult

__all__ = [
    "AccessKey",
    "DatadogSink",
    "MetricResource",
    "MetricSeriesPoint",
    "Multisig",
    "MultisigsCollector",
    "Signer",
    "SignerKeys",
    "SubmissionError",
    "SubmissionResult",
    "generate_all_metrics",
    "host_from_url",
]
