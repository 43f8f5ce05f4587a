# SPDX-FileCopyrightText: 2025 The blackbox-exporter Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Module configuration models."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class ProberType(str, Enum):
    HTTP = "http"
    TCP = "tcp"
    ICMP = "icmp"


def _str_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class HTTPProbeConfig:
    """Options for one HTTP request/response check."""

    # Empty means any 2xx status.
    valid_status_codes: tuple[int, ...] = ()
    method: str = "GET"
    path: str = "/"
    follow_redirects: bool = True
    fail_if_ssl: bool = False
    fail_if_not_ssl: bool = False
    fail_if_matches: tuple[str, ...] = ()
    fail_if_not_matches: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> HTTPProbeConfig:
        data = data or {}
        follow_redirects = data.get("follow_redirects")
        if follow_redirects is None:
            follow_redirects = not bool(data.get("no_follow_redirects", False))
        fail_if_matches = data.get("fail_if_matches", data.get("fail_if_matches_regexp"))
        fail_if_not_matches = data.get("fail_if_not_matches", data.get("fail_if_not_matches_regexp"))
        return cls(
            valid_status_codes=tuple(int(code) for code in data.get("valid_status_codes") or ()),
            method=str(data.get("method") or cls.method).upper(),
            path=str(data.get("path") or cls.path),
            follow_redirects=bool(follow_redirects),
            fail_if_ssl=bool(data.get("fail_if_ssl", False)),
            fail_if_not_ssl=bool(data.get("fail_if_not_ssl", False)),
            fail_if_matches=_str_tuple(fail_if_matches),
            fail_if_not_matches=_str_tuple(fail_if_not_matches),
        )


@dataclass(frozen=True)
class QueryResponseStep:
    """One expect-then-send unit of a TCP script."""

    expect: str = ""
    send: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> QueryResponseStep:
        return cls(expect=str(data.get("expect") or ""), send=str(data.get("send") or ""))


@dataclass(frozen=True)
class TCPProbeConfig:
    steps: tuple[QueryResponseStep, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> TCPProbeConfig:
        data = data or {}
        raw_steps = data.get("steps", data.get("query_response")) or ()
        return cls(steps=tuple(QueryResponseStep.from_mapping(step or {}) for step in raw_steps))


@dataclass(frozen=True)
class ICMPProbeConfig:
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> ICMPProbeConfig:  # noqa: ARG003
        return cls()


@dataclass(frozen=True)
class Module:
    """
    A named probe definition.

    `prober` is kept as written in the configuration; it is resolved to a
    ProberType only when a probe is requested so an unknown value surfaces as a
    client error at request time.
    """

    name: str
    prober: str
    timeout: float
    http: HTTPProbeConfig = field(default_factory=HTTPProbeConfig)
    tcp: TCPProbeConfig = field(default_factory=TCPProbeConfig)
    icmp: ICMPProbeConfig = field(default_factory=ICMPProbeConfig)

    @property
    def prober_type(self) -> ProberType | None:
        try:
            return ProberType(self.prober)
        except ValueError:
            return None

    def protocol_config(self, prober_type: ProberType) -> HTTPProbeConfig | TCPProbeConfig | ICMPProbeConfig:
        if prober_type is ProberType.HTTP:
            return self.http
        if prober_type is ProberType.TCP:
            return self.tcp
        return self.icmp


class Configuration(Mapping[str, Module]):
    """Read-only mapping of module name to Module."""

    def __init__(self, modules: Mapping[str, Module] | None = None):
        self._modules = MappingProxyType(dict(modules or {}))

    def __getitem__(self, name: str) -> Module:
        return self._modules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def uses(self, prober_type: ProberType) -> bool:
        return any(module.prober_type is prober_type for module in self._modules.values())

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Configuration(modules={sorted(self._modules)})"
