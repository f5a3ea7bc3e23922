"""Pydantic models for the provisioning context and step outcomes."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Literal, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import constants

if TYPE_CHECKING:
    from .runtime.executor import CommandResult


class PortMapping(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: int = Field(ge=1, le=65535)
    container: int = Field(ge=1, le=65535)

    def as_flag(self) -> str:
        return f"{self.host}:{self.container}"


class VolumeMount(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str
    target: str

    def as_flag(self) -> str:
        return f"{self.source}:{self.target}"


class ServiceSpec(BaseModel):
    """A long-running container deployed onto the provisioning network."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    title: str
    image: str
    ports: Tuple[PortMapping, ...] = ()
    volumes: Tuple[VolumeMount, ...] = ()
    named_volume: Optional[str] = None
    host_dirs: Tuple[Path, ...] = ()
    restart_policy: str = constants.RESTART_POLICY
    access_port: int = Field(ge=1, le=65535)
    default_email: Optional[str] = None
    default_password: Optional[str] = None
    login_note: Optional[str] = None

    @field_validator("host_dirs")
    def ensure_absolute(cls, value: Tuple[Path, ...]) -> Tuple[Path, ...]:
        for path in value:
            if not path.is_absolute():
                raise ValueError("Paths must be absolute")
        return value

    @model_validator(mode="after")
    def ensure_access_port_published(self) -> "ServiceSpec":
        if self.access_port not in {port.host for port in self.ports}:
            raise ValueError(
                f"access_port {self.access_port} is not published by {self.name}"
            )
        return self

    def port_list(self) -> str:
        return ", ".join(str(port.host) for port in self.ports)


def _npm_service() -> ServiceSpec:
    return ServiceSpec(
        name=constants.NPM_CONTAINER,
        title="Nginx Proxy Manager (NPM)",
        image=constants.NPM_IMAGE,
        ports=tuple(
            PortMapping(host=host, container=container)
            for host, container in constants.NPM_PORTS
        ),
        volumes=(
            VolumeMount(source=constants.NPM_VOLUME, target="/data"),
            VolumeMount(source=constants.NPM_LETSENCRYPT_DIR, target="/etc/letsencrypt"),
        ),
        named_volume=constants.NPM_VOLUME,
        host_dirs=(Path(constants.NPM_LETSENCRYPT_DIR),),
        access_port=constants.NPM_ADMIN_PORT,
        default_email=constants.NPM_DEFAULT_EMAIL,
        default_password=constants.NPM_DEFAULT_PASSWORD,
        login_note="Please log in and change the default credentials immediately!",
    )


def _portainer_service() -> ServiceSpec:
    return ServiceSpec(
        name=constants.PORTAINER_CONTAINER,
        title="Portainer CE (Docker Management)",
        image=constants.PORTAINER_IMAGE,
        ports=(
            PortMapping(host=constants.PORTAINER_PORT, container=constants.PORTAINER_PORT),
        ),
        volumes=(
            VolumeMount(source=constants.DOCKER_SOCKET, target=constants.DOCKER_SOCKET),
            VolumeMount(source=constants.PORTAINER_VOLUME, target="/data"),
        ),
        named_volume=constants.PORTAINER_VOLUME,
        access_port=constants.PORTAINER_PORT,
        login_note="You will be prompted to create an admin user on first login.",
    )


class ServicesConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    proxy: ServiceSpec = Field(default_factory=_npm_service)
    manager: ServiceSpec = Field(default_factory=_portainer_service)

    @model_validator(mode="after")
    def ensure_distinct(self) -> "ServicesConfig":
        if self.proxy.name == self.manager.name:
            raise ValueError("Service container names must be distinct")
        clash = {p.host for p in self.proxy.ports} & {p.host for p in self.manager.ports}
        if clash:
            raise ValueError(f"Host ports published twice: {sorted(clash)}")
        return self

    def deployed(self) -> Tuple[ServiceSpec, ServiceSpec]:
        return self.proxy, self.manager


class ExecutionContext(BaseModel):
    """Immutable settings shared read-only by every provisioning step."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    network_name: str = constants.DOCKER_NETWORK
    apt_packages: Tuple[str, ...] = constants.APT_PACKAGES
    docker_packages: Tuple[str, ...] = constants.DOCKER_PACKAGES
    docker_repo_url: str = constants.DOCKER_REPO_URL
    docker_gpg_url: str = constants.DOCKER_GPG_URL
    keyring_path: Path = Path(constants.KEYRING_PATH)
    apt_source_path: Path = Path(constants.APT_SOURCE_PATH)
    hosts_file: Path = Path(constants.HOSTS_FILE)
    ip_lookup_url: str = constants.IP_LOOKUP_URL
    ip_lookup_timeout: float = Field(default=constants.IP_LOOKUP_TIMEOUT, gt=0)
    services: ServicesConfig = Field(default_factory=ServicesConfig)

    @field_validator("network_name")
    def ensure_network_name(cls, value: str) -> str:
        if not value or any(ch.isspace() for ch in value):
            raise ValueError("network_name must be a non-empty name without whitespace")
        return value

    @field_validator("docker_repo_url", "docker_gpg_url", "ip_lookup_url")
    def ensure_http_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"Invalid URL {value!r}: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"Expected an absolute http(s) URL, got {value!r}")
        return value

    @field_validator("apt_packages", "docker_packages")
    def ensure_packages(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("Package lists must not be empty")
        return value

    @field_validator("keyring_path", "apt_source_path", "hosts_file")
    def ensure_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError("Paths must be absolute")
        return value


class StepResult(BaseModel):
    """Outcome of a single provisioning step."""

    status: Literal["skipped", "succeeded", "failed"]
    detail: str = ""
    command: Optional[str] = None
    output: Optional[str] = None
    warn: bool = False

    @model_validator(mode="after")
    def ensure_diagnostic(self) -> "StepResult":
        if self.status == "failed" and not self.detail.strip():
            raise ValueError("A failed step must carry a diagnostic")
        return self

    @classmethod
    def skipped(cls, reason: str, *, warn: bool = False) -> "StepResult":
        return cls(status="skipped", detail=reason, warn=warn)

    @classmethod
    def succeeded(cls, detail: str = "") -> "StepResult":
        return cls(status="succeeded", detail=detail)

    @classmethod
    def failed(
        cls,
        diagnostic: str,
        *,
        command: Optional[str] = None,
        output: Optional[str] = None,
    ) -> "StepResult":
        return cls(status="failed", detail=diagnostic, command=command, output=output)

    @classmethod
    def from_command(cls, result: "CommandResult", diagnostic: str) -> "StepResult":
        """Build a failure carrying the command line and its error output."""
        return cls.failed(diagnostic, command=result.display, output=result.detail)

    @property
    def ok(self) -> bool:
        return self.status != "failed"


class StageEvent(BaseModel):
    stage: str
    status: Literal["started", "ok", "skipped", "failed"]
    detail: Optional[str] = None


class RunState(str, Enum):
    not_started = "not_started"
    running = "running"
    succeeded = "succeeded"
    aborted = "aborted"


class RunRecord(BaseModel):
    run_id: str
    state: RunState = RunState.not_started
    current_step: Optional[str] = None
    failed_step: Optional[str] = None
    events: List[StageEvent] = Field(default_factory=list)
    summary: Optional[str] = None
