"""Rendering helpers for the banner and the final access summary."""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from rich.markup import escape

from . import constants
from .models import ExecutionContext, ServiceSpec

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


@dataclass
class ServiceAccess:
    """Access details for one deployed service."""

    name: str
    title: str
    url: str
    default_email: Optional[str] = None
    default_password: Optional[str] = None
    login_note: Optional[str] = None


def access_url(address: str, port: int) -> str:
    try:
        is_v6 = ipaddress.ip_address(address).version == 6
    except ValueError:
        is_v6 = False
    host = f"[{address}]" if is_v6 else address
    return f"http://{host}:{port}"


class SummaryRenderer:
    """Renders rich-markup text blocks from Jinja templates."""

    def __init__(self, template_dir: Path = TEMPLATE_DIR) -> None:
        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["esc"] = escape

    def banner(self, context: ExecutionContext) -> str:
        template = self.env.get_template("banner.txt.j2")
        return template.render(
            version=constants.VERSION,
            services=[service.name for service in context.services.deployed()],
        )

    def summary(self, context: ExecutionContext, address: str) -> str:
        template = self.env.get_template("summary.txt.j2")
        proxy, manager = context.services.deployed()
        return template.render(
            network=context.network_name,
            services=self.access_details(context, address),
            proxy=proxy,
            manager=manager,
        )

    @staticmethod
    def access_details(context: ExecutionContext, address: str) -> List[ServiceAccess]:
        return [_access(service, address) for service in context.services.deployed()]


def _access(service: ServiceSpec, address: str) -> ServiceAccess:
    return ServiceAccess(
        name=service.name,
        title=service.title,
        url=access_url(address, service.access_port),
        default_email=service.default_email,
        default_password=service.default_password,
        login_note=service.login_note,
    )
