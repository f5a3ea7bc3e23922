"""Centralized constants for the kitzone host setup.

All default package lists, paths, image names and port bindings are
defined here. ``ExecutionContext`` takes its defaults from this module and
an optional YAML file may override them.
"""

from __future__ import annotations

VERSION = "1.1.0"

# ---------------------------------------------------------------------------
# Docker network every deployed service is attached to
# ---------------------------------------------------------------------------
DOCKER_NETWORK = "kitzone-net"

# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------
APT_PACKAGES: tuple[str, ...] = (
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "gnupg",
    "lsb-release",
    "unzip",
    "git",
    "python3-pip",
    "nano",
    "tmux",
)

DOCKER_PACKAGES: tuple[str, ...] = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-compose-plugin",
)

# ---------------------------------------------------------------------------
# Upstream Docker apt repository
# ---------------------------------------------------------------------------
DOCKER_REPO_URL = "https://download.docker.com/linux/ubuntu"
DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
KEYRING_PATH = "/etc/apt/keyrings/docker.gpg"
APT_SOURCE_PATH = "/etc/apt/sources.list.d/docker.list"

# ---------------------------------------------------------------------------
# Host files and lookups
# ---------------------------------------------------------------------------
HOSTS_FILE = "/etc/hosts"
LOOPBACK_ADDRESS = "127.0.0.1"
IP_LOOKUP_URL = "https://ifconfig.me/ip"
IP_LOOKUP_TIMEOUT = 5.0

RESTART_POLICY = "unless-stopped"

# ---------------------------------------------------------------------------
# Nginx Proxy Manager (reverse proxy + admin UI)
# ---------------------------------------------------------------------------
NPM_CONTAINER = "npm"
NPM_IMAGE = "jc21/nginx-proxy-manager:latest"
NPM_VOLUME = "npm-data"
NPM_LETSENCRYPT_DIR = "/opt/npm/letsencrypt"
NPM_PORTS: tuple[tuple[int, int], ...] = ((80, 80), (81, 81), (443, 443))
NPM_ADMIN_PORT = 81
NPM_DEFAULT_EMAIL = "admin@example.com"
NPM_DEFAULT_PASSWORD = "changeme"

# ---------------------------------------------------------------------------
# Portainer CE (container management UI)
# ---------------------------------------------------------------------------
PORTAINER_CONTAINER = "portainer"
PORTAINER_IMAGE = "portainer/portainer-ce:latest"
PORTAINER_VOLUME = "portainer_data"
PORTAINER_PORT = 9000
DOCKER_SOCKET = "/var/run/docker.sock"

# ---------------------------------------------------------------------------
# Environment variables read at startup
# ---------------------------------------------------------------------------
CONFIG_ENV_VAR = "KITZONE_CONFIG"
LOG_LEVEL_ENV_VAR = "KITZONE_LOG_LEVEL"
