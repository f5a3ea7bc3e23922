"""Tests for banner and summary rendering."""
from __future__ import annotations

import io
from pathlib import Path

from rich.console import Console

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from kitzone.models import ExecutionContext
from kitzone.rendering import SummaryRenderer, access_url


def _plain(markup: str) -> str:
    console = Console(file=io.StringIO(), width=200, color_system=None)
    console.print(markup)
    return console.file.getvalue()


class TestAccessUrl:
    """Tests for access URL formatting."""

    def test_ipv4(self):
        """IPv4 addresses are used as-is."""
        assert access_url("203.0.113.7", 81) == "http://203.0.113.7:81"

    def test_ipv6_bracketed(self):
        """IPv6 addresses are bracketed."""
        assert access_url("2001:db8::1", 9000) == "http://[2001:db8::1]:9000"

    def test_hostname(self):
        """Host names are used as-is."""
        assert access_url("server.lan", 81) == "http://server.lan:81"


class TestSummary:
    """Tests for the completion summary."""

    def test_one_url_per_service(self):
        """Each deployed service gets one access URL."""
        context = ExecutionContext()
        details = SummaryRenderer.access_details(context, "10.0.0.5")
        assert [d.url for d in details] == ["http://10.0.0.5:81", "http://10.0.0.5:9000"]
        assert details[0].default_email == "admin@example.com"
        assert details[1].default_password is None

    def test_rendered_text(self):
        """The summary lists network, URLs, credentials and hints."""
        text = _plain(SummaryRenderer().summary(ExecutionContext(), "10.0.0.5"))

        assert "Server setup completed successfully!" in text
        assert "Docker network: kitzone-net" in text
        assert ">> Nginx Proxy Manager (NPM):" in text
        assert "Access UI: http://10.0.0.5:81" in text
        assert "Default Password: changeme" in text
        assert "create an admin user on first login" in text
        assert "docker logs -f npm" in text

    def test_markup_in_values_escaped(self):
        """Values are printed literally, never as markup."""
        context = ExecutionContext.model_validate(
            {"network_name": "[red]net"}
        )
        text = _plain(SummaryRenderer().summary(context, "10.0.0.5"))
        assert "Docker network: [red]net" in text

    def test_ipv6_summary(self):
        """The summary brackets an IPv6 address."""
        text = _plain(SummaryRenderer().summary(ExecutionContext(), "2001:db8::1"))
        assert "http://[2001:db8::1]:81" in text


class TestBanner:
    """Tests for the startup banner."""

    def test_banner_names_version_and_services(self):
        """The banner shows the version and deployed services."""
        text = _plain(SummaryRenderer().banner(ExecutionContext()))
        assert "KITZONE SERVER SETUP v1.1.0" in text
        assert "Docker, npm, portainer" in text
