"""Environment driven configuration."""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level=None):
    logging.basicConfig(
        level=getattr(logging, (level or os.getenv("LOG_LEVEL", "INFO")).upper()),
        format=LOG_FORMAT,
    )


def output_path():
    """Where ``export`` writes the assembled document."""
    return os.getenv("CRDEXPORT_OUTPUT", "crds/generated/crds.yaml")


def wait_timeout() -> float:
    """Seconds to wait for every CRD to become Established."""
    return float(os.getenv("CRDEXPORT_WAIT_TIMEOUT", "60"))


def poll_interval() -> float:
    return float(os.getenv("CRDEXPORT_POLL_INTERVAL", "2"))


def worker_limit() -> int:
    return int(os.getenv("CRDEXPORT_WORKER_LIMIT", "5"))


def model_packages():
    """Packages imported to discover registered resources."""
    value = os.getenv("CRDEXPORT_MODEL_PACKAGES", "crdexport.models")
    return [p.strip() for p in value.split(",") if p.strip()]
