import argparse
import asyncio
import json
import logging
import sys

import uvicorn

from dtf_workload.config import SimConfig, load_config
from dtf_workload.errors import SetupError
from dtf_workload.logging_config import setup_logging
from dtf_workload.workload import Workload

log = logging.getLogger("dtf_workload.main")


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dtf-workload", description="Drive random DTF fund operations.")
    p.add_argument("-c", "--config", help="Path to config.toml (default: $DTF_CONFIG or the packaged one)")
    sub = p.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Create funds and run random operations (default)")
    run.add_argument("-n", "--operations", type=int, help="Number of exploration iterations")

    serve = sub.add_parser("serve", help="Run the HTTP control API")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)

    sub.add_parser("check-fork", help="Report chain id and whether the node is a mainnet fork")
    return p


async def _run(config: SimConfig, operations: int | None) -> None:
    wl = Workload.from_config(config)
    await wl.init()
    await wl.run(operations)


async def _check_fork(config: SimConfig) -> dict:
    wl = Workload.from_config(config)
    return await wl.gateway.network_info()


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    setup_logging()
    config = SimConfig.from_cfg(load_config(args.config))

    match args.command:
        case "serve":
            from dtf_workload.app import create_app

            app = create_app(config)
            uvicorn.run(app, host=args.host or config.api_host, port=args.port or config.api_port, lifespan="on")
            return 0
        case "check-fork":
            try:
                info = asyncio.run(_check_fork(config))
            except Exception as e:
                log.error("Error checking fork: %s", e)
                return 1
            print(json.dumps(info, indent=2))
            if not info["mainnet_fork"]:
                log.warning("Mainnet contracts not found; this is not a mainnet fork")
            return 0
        case _:
            try:
                asyncio.run(_run(config, getattr(args, "operations", None)))
            except SetupError as e:
                log.error("%s", e)
                return 1
            except KeyboardInterrupt:
                log.info("Interrupted")
                return 130
            except Exception:
                log.exception("Unexpected error")
                return 1
            return 0


if __name__ == "__main__":
    sys.exit(main())
