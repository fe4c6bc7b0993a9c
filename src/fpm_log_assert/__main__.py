"""Module entrypoint.

Allows:
    python -m fpm_log_assert
"""

from __future__ import annotations

from fpm_log_assert.server.log_server import main

if __name__ == "__main__":
    main()
