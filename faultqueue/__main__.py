"""Run the operator API and the scheduled reconciler under uvicorn."""

from __future__ import annotations

import uvicorn

from faultqueue.config import APP_HOST, load_config, resolve_app_port


def main() -> None:
    config = load_config()
    uvicorn.run(
        "faultqueue.main:app",
        host=APP_HOST,
        port=resolve_app_port(),
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
