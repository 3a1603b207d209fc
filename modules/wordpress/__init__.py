"""WordPress operations over WP-CLI.

Submodules:
- cli: WP-CLI wrappers bound to an Environment
- db: export, import, search-replace and reachability checks
"""

# Intentionally minimal; logic lives in submodules and __main__.
