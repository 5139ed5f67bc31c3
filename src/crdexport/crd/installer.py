"""Install CRDs into a live cluster and wait for them to be Established."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Optional, Tuple

from kubernetes.client.exceptions import ApiException
from pydantic import BaseModel, ConfigDict
from urllib3.exceptions import HTTPError

from crdexport import settings

from .descriptor import check_unique
from .errors import ClusterRejection, InstallError, Timeout
from .renderer import Dialect, render_all

logger = logging.getLogger(__name__)

# Connection resets, socket timeouts and exhausted urllib3 retries
TRANSPORT_ERRORS = (OSError, HTTPError)


class InstallState(str, Enum):
    SUBMITTED = "Submitted"
    ACCEPTED = "Accepted"
    ESTABLISHED = "Established"
    REJECTED = "Rejected"
    TIMEOUT = "Timeout"


class Outcome(BaseModel):
    """Where one CRD ended up."""

    model_config = ConfigDict(frozen=True)

    name: str
    state: InstallState
    message: str = ""
    created: bool = False
    status_code: Optional[int] = None
    waited: float = 0

    @property
    def ok(self):
        return self.state == InstallState.ESTABLISHED

    def error(self):
        """The error matching a failed state, None when Established."""
        if self.state == InstallState.REJECTED:
            return ClusterRejection(self.name, self.status_code, self.message)
        if self.state == InstallState.TIMEOUT:
            return Timeout(self.name, self.waited)
        return None


class InstallResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    dialect: Dialect
    outcomes: Tuple[Outcome, ...]

    @property
    def ok(self):
        return all(o.ok for o in self.outcomes)

    def get(self, name) -> Optional[Outcome]:
        return next((o for o in self.outcomes if o.name == name), None)


def _condition(crd, condition_type):
    for condition in (crd.get("status") or {}).get("conditions") or []:
        if condition.get("type") == condition_type:
            return condition
    return None


def _transient(error):
    return (error.status or 0) >= 500


def _served_versions(spec):
    versions = [v.get("name") for v in spec.get("versions") or [] if v.get("served", True)]
    if not versions and spec.get("version"):
        versions = [spec["version"]]
    return versions


def _conflict(existing, body):
    """Describe how an existing CRD differs from ``body``, None if it fits."""
    have = existing.get("spec") or {}
    want = body["spec"]
    problems = []
    for field in ("group", "scope"):
        if have.get(field) != want[field]:
            problems.append(f"{field} is {have.get(field)!r}, not {want[field]!r}")
    for field in ("kind", "plural"):
        found = (have.get("names") or {}).get(field)
        if found != want["names"][field]:
            problems.append(f"names.{field} is {found!r}, not {want['names'][field]!r}")
    served = _served_versions(have)
    for version in _served_versions(want):
        if version not in served:
            problems.append(f"version {version} is not served")
    return "; ".join(problems) or None


class CRDInstaller:
    """Submit CRDs as one batch, then wait for each to be Established.

    Creation is create-if-absent: an existing CRD of the same name is left
    alone and only waited on. Every CRD is polled independently until it is
    Established, rejected, the wait window runs out, or ``cancel`` is set.
    """

    def __init__(self, crd_client, timeout=None, poll_interval=None, worker_limit=None):
        self.crd_client = crd_client
        self.timeout = settings.wait_timeout() if timeout is None else timeout
        self.poll_interval = (
            settings.poll_interval() if poll_interval is None else poll_interval
        )
        self.worker_limit = worker_limit or settings.worker_limit()

    def detect_dialect(self):
        if self.crd_client.supports_structural():
            logger.info("API server serves apiextensions.k8s.io/v1")
            return Dialect.STRUCTURAL
        logger.info("API server lacks apiextensions.k8s.io/v1, using v1beta1")
        return Dialect.LEGACY

    def install(self, descriptors, dialect=None, cancel=None):
        """Install all descriptors.

        Returns:
            InstallResult: every CRD Established

        Raises:
            InstallError: naming every CRD and its final state when any of
            them was rejected or timed out
        """
        descriptors = list(descriptors)
        check_unique(descriptors)
        cancel = cancel or threading.Event()

        dialect = Dialect(dialect) if dialect else self.detect_dialect()
        rendered = render_all(descriptors, dialect)
        if not rendered:
            return InstallResult(dialect=dialect, outcomes=())

        workers = min(self.worker_limit, len(rendered))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            submitted = list(pool.map(self._submit, rendered))

        # One poller per CRD so no wait blocks another
        deadline = time.monotonic() + self.timeout
        with ThreadPoolExecutor(max_workers=len(rendered)) as pool:
            outcomes = list(
                pool.map(
                    lambda pair: self._wait_established(*pair, deadline, cancel),
                    zip(rendered, submitted),
                )
            )

        result = InstallResult(dialect=dialect, outcomes=tuple(outcomes))
        if not result.ok:
            error = InstallError(outcomes)
            logger.error(str(error))
            raise error

        logger.info(f"Installed {len(outcomes)} CRDs ({dialect.api_version})")
        return result

    def _submit(self, crd):
        """Create the CRD unless it exists. Never raises for API or transport errors."""
        try:
            existing = self.crd_client.read(crd.body["apiVersion"], crd.name)
            logger.info(f"CRD {crd.name} already exists")
            return self._existing(crd, existing)
        except ApiException as e:
            if e.status != 404 and not _transient(e):
                return self._rejected(crd.name, e)
        except TRANSPORT_ERRORS as e:
            return self._unreachable(crd.name, e)

        try:
            self.crd_client.create(crd.to_dict())
            logger.info(f"Created CRD: {crd.name}")
            return Outcome(name=crd.name, state=InstallState.ACCEPTED, created=True)
        except ApiException as e:
            if e.status == 409:
                logger.info(f"CRD {crd.name} created concurrently")
                return self._existing(crd)
            if e.status == 404:
                logger.warning(f"{crd.body['apiVersion']} not available for {crd.name}")
                return Outcome(
                    name=crd.name,
                    state=InstallState.SUBMITTED,
                    message=f"{crd.body['apiVersion']} not available",
                )
            return self._rejected(crd.name, e)
        except TRANSPORT_ERRORS as e:
            return self._unreachable(crd.name, e)

    def _existing(self, crd, existing=None):
        """Accept a CRD already on the server unless it conflicts with ours."""
        if existing is None:
            try:
                existing = self.crd_client.read(crd.body["apiVersion"], crd.name)
            except (ApiException,) + TRANSPORT_ERRORS:
                # Not readable yet, the poll loop sorts it out
                return Outcome(name=crd.name, state=InstallState.ACCEPTED)

        conflict = _conflict(existing, crd.body)
        if conflict:
            message = f"conflicts with existing CRD: {conflict}"
            logger.error(f"CRD {crd.name} {message}")
            return Outcome(name=crd.name, state=InstallState.REJECTED, message=message)
        return Outcome(name=crd.name, state=InstallState.ACCEPTED)

    @staticmethod
    def _unreachable(name, error):
        logger.error(f"CRD {name} could not be submitted: {error}")
        return Outcome(
            name=name,
            state=InstallState.REJECTED,
            message=f"API server unreachable: {error}",
        )

    @staticmethod
    def _rejected(name, error):
        message = error.body or error.reason or str(error)
        if isinstance(message, bytes):
            message = message.decode("utf-8", "replace")
        logger.error(f"CRD {name} rejected ({error.status}): {message}")
        return Outcome(
            name=name,
            state=InstallState.REJECTED,
            message=message,
            status_code=error.status,
        )

    def _wait_established(self, crd, submitted, deadline, cancel):
        if submitted.state == InstallState.REJECTED:
            return submitted

        api_version = crd.body["apiVersion"]
        created = submitted.created
        message = submitted.message
        while True:
            if cancel.is_set():
                return Outcome(
                    name=crd.name,
                    state=InstallState.TIMEOUT,
                    message="cancelled before established",
                    created=created,
                    waited=self.timeout - (deadline - time.monotonic()),
                )

            try:
                current = self.crd_client.read(api_version, crd.name)
            except ApiException as e:
                if e.status == 404 or _transient(e):
                    current = None
                    message = f"not readable yet ({e.status})"
                else:
                    return self._rejected(crd.name, e)
            except TRANSPORT_ERRORS as e:
                current = None
                message = f"not readable yet: {e}"

            if current is not None:
                established = _condition(current, "Established")
                if established and established.get("status") == "True":
                    logger.info(f"CRD {crd.name} established")
                    return Outcome(
                        name=crd.name, state=InstallState.ESTABLISHED, created=created
                    )

                names = _condition(current, "NamesAccepted")
                if names and names.get("status") == "False":
                    reason = names.get("message") or names.get("reason") or ""
                    logger.error(f"CRD {crd.name} names not accepted: {reason}")
                    return Outcome(
                        name=crd.name,
                        state=InstallState.REJECTED,
                        message=reason,
                        created=created,
                    )
                message = "waiting for Established condition"

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.error(f"CRD {crd.name} not established after {self.timeout}s")
                return Outcome(
                    name=crd.name,
                    state=InstallState.TIMEOUT,
                    message=f"not established after {self.timeout}s: {message}",
                    created=created,
                    waited=self.timeout,
                )
            cancel.wait(min(self.poll_interval, remaining))


def install(descriptors, crd_client=None, dialect=None, cancel=None, **kwargs):
    """Install descriptors using a fresh connection unless one is given."""
    if crd_client is None:
        from .client import CRDClient

        crd_client = CRDClient()
    installer = CRDInstaller(crd_client, **kwargs)
    return installer.install(descriptors, dialect=dialect, cancel=cancel)
