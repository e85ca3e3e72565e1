"""One-time detection of the serving strategy.

The preview pane either loads generated handles directly, or needs the
rewritten markup handed over as text. The check runs once per probe; every
HTML request awaits its outcome before deciding how to answer.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from livepreview.core.registry import RegistryEntry, URLRegistry
from livepreview.core.types import ProjectPath
from livepreview.errors import ProbeError

logger = logging.getLogger(__name__)

CapabilityCheck = Callable[[], Awaitable[bool]]
HandleLoader = Callable[[str], Awaitable[RegistryEntry | None]]

PROBE_PATH = ProjectPath("/.livepreview-probe.html")
PROBE_DOCUMENT = "<!DOCTYPE html><html><head><title>probe</title></head><body></body></html>"

HANDLE_URL_MODES = ("auto", "always", "never")


class ProbeState(StrEnum):
    """Lifecycle of a capability probe."""

    UNINITIALIZED = "uninitialized"
    PROBING = "probing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ServingStrategy:
    """How HTML is delivered to the preview pane."""

    use_handle_url: bool


class CapabilityProbe:
    """Runs a capability check once and memoizes the resulting strategy.

    Concurrent callers of ``probe()`` share a single check. The strategy is
    published in one step when the check succeeds; a failed check leaves it
    unset and every caller gets a ``ProbeError``.
    """

    def __init__(self, check: CapabilityCheck) -> None:
        """Initialize the probe.

        Args:
            check: Coroutine function answering "can the pane load handles?"
        """
        self._check = check
        self._state = ProbeState.UNINITIALIZED
        self._strategy: ServingStrategy | None = None
        self._task: asyncio.Task[ServingStrategy] | None = None

    @property
    def state(self) -> ProbeState:
        return self._state

    @property
    def strategy(self) -> ServingStrategy | None:
        """Settled strategy, or None until the probe is ready."""
        return self._strategy

    async def probe(self) -> ServingStrategy:
        """Return the serving strategy, running the check on first use.

        Returns:
            Settled ServingStrategy

        Raises:
            ProbeError: If the check failed
        """
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return await asyncio.shield(self._task)

    async def _run(self) -> ServingStrategy:
        self._state = ProbeState.PROBING
        try:
            use_handle_url = await self._check()
        except Exception as e:
            self._state = ProbeState.FAILED
            logger.error(f"Capability probe failed: {e}")
            raise ProbeError(f"Capability probe failed: {e}") from e

        strategy = ServingStrategy(use_handle_url=bool(use_handle_url))
        self._strategy = strategy
        self._state = ProbeState.READY
        mode = "handle URLs" if strategy.use_handle_url else "inline markup"
        logger.info(f"Serving strategy: {mode}")
        return strategy


def fixed_capability(value: bool) -> CapabilityCheck:
    """Build a check that always answers the same way."""

    async def check() -> bool:
        return value

    return check


def handle_load_check(
    registry: URLRegistry,
    loader: HandleLoader | None = None,
) -> CapabilityCheck:
    """Build a check that round-trips a probe document through a handle.

    Registers a small HTML document, loads it back through ``loader`` and
    compares what comes out. The probe entry is revoked afterwards.

    Args:
        registry: Registry the probe document is registered in
        loader: Loads a handle the way the preview pane would
                (default: direct registry lookup)

    Returns:
        Capability check coroutine function
    """

    async def resolve(handle: str) -> RegistryEntry | None:
        return registry.resolve(handle)

    load = loader or resolve

    async def check() -> bool:
        handle = registry.create(PROBE_PATH, PROBE_DOCUMENT, "text/html")
        try:
            entry = await load(handle)
        finally:
            registry.invalidate(PROBE_PATH)
        return (
            entry is not None
            and entry.payload == PROBE_DOCUMENT
            and entry.mime_type == "text/html"
        )

    return check


def capability_for_mode(mode: str, registry: URLRegistry) -> CapabilityCheck:
    """Select the capability check for a configured handle URL mode.

    Args:
        mode: "auto", "always" or "never"
        registry: Registry used by the "auto" round-trip check

    Returns:
        Capability check coroutine function

    Raises:
        ValueError: If mode is unknown
    """
    if mode == "always":
        return fixed_capability(True)
    if mode == "never":
        return fixed_capability(False)
    if mode == "auto":
        return handle_load_check(registry)
    raise ValueError(f"Unknown handle URL mode: {mode!r} (expected one of {HANDLE_URL_MODES})")
