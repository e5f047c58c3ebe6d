"""Entry point for the mail source.

Usage::

    python -m mail_source        # or the ``mail-source`` console script
"""

from __future__ import annotations

import asyncio
import sys

from pydantic import ValidationError


def main() -> None:
    from .config import MailSourceConfig
    from .exceptions import MailSourceError
    from .source import MailSource

    try:
        config = MailSourceConfig()
        source = MailSource(config)
    except (ValidationError, MailSourceError) as exc:
        print(f"mail-source: startup aborted: {exc}", file=sys.stderr)
        sys.exit(2)

    asyncio.run(source.run())


if __name__ == "__main__":
    main()
