from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import psutil

from net_indicator.core.config import InterfacesConfig


@dataclass(frozen=True, order=True)
class NetworkIdentity:
    handle: int


NetworkChanged = Callable[[NetworkIdentity, "str | None"], None]
NetworkLost = Callable[[NetworkIdentity], None]


class NetworkChangeSource(ABC):
    @abstractmethod
    def register(self, on_changed: NetworkChanged, on_lost: NetworkLost) -> None:
        """
        Start delivering events. Networks that already exist are reported
        through `on_changed` right after registration.
        """

    @abstractmethod
    def unregister(self) -> None:
        ...


def is_tracked_interface(name: str, cfg: InterfacesConfig) -> bool:
    if name in cfg.exclude_names:
        return False
    if name.startswith(tuple(cfg.exclude_prefixes)):
        return False
    if not cfg.include_vpn and name.startswith(tuple(cfg.vpn_prefixes)):
        return False
    return True


class PsutilNetworkSource(NetworkChangeSource):
    """
    Polls psutil.net_if_stats() and turns link up/down transitions into
    network events. Each up-session of an interface gets a new identity,
    and every registration starts from an empty view so existing links are
    replayed as new networks.
    """

    _handles = itertools.count(1)

    def __init__(self, cfg: InterfacesConfig) -> None:
        self.cfg = cfg
        self._log = logging.getLogger("net_indicator.network")
        self._active: dict[str, NetworkIdentity] = {}
        self._on_changed: NetworkChanged | None = None
        self._on_lost: NetworkLost | None = None
        self._stop: threading.Event | None = None

    @property
    def registered(self) -> bool:
        return self._stop is not None

    def active(self) -> dict[str, NetworkIdentity]:
        return dict(self._active)

    def register(self, on_changed: NetworkChanged, on_lost: NetworkLost) -> None:
        if self.registered:
            self.unregister()
        stop = threading.Event()
        active: dict[str, NetworkIdentity] = {}
        self._stop = stop
        self._active = active
        self._on_changed = on_changed
        self._on_lost = on_lost
        self._scan(active, on_changed, on_lost)
        threading.Thread(
            target=self._run,
            args=(stop, active, on_changed, on_lost),
            name="net-watch",
            daemon=True,
        ).start()

    def unregister(self) -> None:
        if self._stop is not None:
            self._stop.set()
        self._stop = None
        self._on_changed = None
        self._on_lost = None
        self._active = {}

    def scan(self) -> None:
        self._scan(self._active, self._on_changed, self._on_lost)

    def _scan(
        self,
        active: dict[str, NetworkIdentity],
        on_changed: NetworkChanged | None,
        on_lost: NetworkLost | None,
    ) -> None:
        try:
            stats = psutil.net_if_stats()
        except Exception as exc:
            self._log.warning("net_if_stats failed", extra={"error": str(exc)})
            return

        up = {name for name, st in stats.items() if st.isup and is_tracked_interface(name, self.cfg)}

        for name in sorted(set(active) - up):
            identity = active.pop(name)
            self._log.info("network lost", extra={"interface": name, "handle": identity.handle})
            if on_lost is not None:
                on_lost(identity)

        for name in sorted(up - set(active)):
            identity = NetworkIdentity(handle=next(self._handles))
            active[name] = identity
            self._log.info("network available", extra={"interface": name, "handle": identity.handle})
            if on_changed is not None:
                on_changed(identity, name)

    def _run(
        self,
        stop: threading.Event,
        active: dict[str, NetworkIdentity],
        on_changed: NetworkChanged,
        on_lost: NetworkLost,
    ) -> None:
        while not stop.wait(float(self.cfg.watch_interval_seconds)):
            self._scan(active, on_changed, on_lost)
