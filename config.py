"""Shared configuration constants for autosync.

Centralizes environment records, sync directions and tool paths used by
modules. Environment records can be overridden per key from a JSON file
named by AUTOSYNC_ENV_FILE (see modules.environments).
"""

import os

WP_CLI_PATH = "wp"
SSH_PATH = "ssh"
SCP_PATH = "scp"
LOG_DIR_NAME = "log"
SYNC_TIMEOUT = int(os.environ.get("AUTOSYNC_TIMEOUT", "600"))  # seconds
ENV_FILE = os.environ.get("AUTOSYNC_ENV_FILE", "")
HTTP_USER = "http"

ENVIRONMENTS = {
    "local": {
        "base_url": "http://localhost:8080",
        "root_path": "/srv/http/example.local",
        "access": "local",
        "tmp_dir": "/tmp",
        "backup_dir": "/srv/backups",
    },
    "staging": {
        "base_url": "https://staging.example.com",
        "root_path": "/var/www/staging",
        "access": "ssh",
        "ssh_host": "deploy@staging.example.com",
        "ssh_port": 22,
        "tmp_dir": "/tmp",
        "backup_dir": "/var/backups/wordpress",
    },
    "production": {
        "base_url": "https://example.com",
        "root_path": "/var/www/production",
        "access": "ssh",
        "ssh_host": "deploy@example.com",
        "ssh_port": 22,
        "tmp_dir": "/tmp",
        "backup_dir": "/var/backups/wordpress",
    },
}

# direction -> (source, destination)
DIRECTIONS = {
    "local-to-staging": ("local", "staging"),
    "staging-to-production": ("staging", "production"),
    "production-to-local": ("production", "local"),
}

# Destinations that require an explicit confirmation before import.
PROTECTED_ENVIRONMENTS = ("production",)
