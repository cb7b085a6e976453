# backend/papermate/serve.py
"""
Process entry point: `python -m papermate.serve` or `papermate-serve`.

The app is built by `papermate.main.create_app` inside the uvicorn worker,
so each worker owns its engine and disposes it on shutdown.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import uvicorn

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerOptions:
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"
    forwarded_allow_ips: str = "*"
    ssl_certfile: Optional[str] = None
    ssl_keyfile: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServerOptions":
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            reload=os.getenv("RELOAD", "false").strip().lower() in _TRUTHY,
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "*"),
            ssl_certfile=os.getenv("SSL_CERTFILE") or None,
            ssl_keyfile=os.getenv("SSL_KEYFILE") or None,
        )

    def uvicorn_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "factory": True,
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level,
            "proxy_headers": True,
            "forwarded_allow_ips": self.forwarded_allow_ips,
        }
        # TLS needs both halves; a lone cert or key is a misconfiguration.
        if self.ssl_certfile or self.ssl_keyfile:
            if not (self.ssl_certfile and self.ssl_keyfile):
                raise RuntimeError("SSL_CERTFILE and SSL_KEYFILE must be set together.")
            kwargs["ssl_certfile"] = self.ssl_certfile
            kwargs["ssl_keyfile"] = self.ssl_keyfile
        return kwargs


def main() -> None:
    options = ServerOptions.from_env()
    logger.info(
        "Starting PaperMate API",
        extra={"host": options.host, "port": options.port, "tls": bool(options.ssl_certfile)},
    )
    uvicorn.run("papermate.main:create_app", **options.uvicorn_kwargs())


if __name__ == "__main__":
    main()
