#!/usr/bin/env python3
"""
Production application runner for the Document Translation Service

Commands:
    server  start uvicorn with production logging
    health  query a running instance's readiness and component health
    sweep   remove temporary artifacts orphaned by a crashed process
"""
import os
import sys
import json
import argparse
import logging
from pathlib import Path
from typing import Optional

# Add the project root to the Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from config import settings

logger = logging.getLogger(__name__)


def setup_production_logging():
    """Log to stdout and to a rotating file under logs/"""
    from utils.logging import setup_logging

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file or str(logs_dir / "document-service.log")
    )


def run_server():
    """Run the application server"""
    import uvicorn

    setup_production_logging()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Host: {settings.host}:{settings.port}, workers: {settings.workers}")
    logger.info(f"Temporary artifacts: {settings.temp_directory}")
    logger.info(f"Translation provider: {settings.translation_provider}")

    uvicorn_config = {
        "app": "main:app",
        "host": settings.host,
        "port": settings.port,
        "workers": settings.workers,
        "log_level": settings.log_level.lower(),
        "access_log": True,
        "server_header": False,
        "date_header": False,
        "proxy_headers": True,
        "forwarded_allow_ips": "*"
    }

    ssl_keyfile = os.getenv("SSL_KEYFILE")
    ssl_certfile = os.getenv("SSL_CERTFILE")

    if ssl_keyfile and ssl_certfile:
        uvicorn_config.update({
            "ssl_keyfile": ssl_keyfile,
            "ssl_certfile": ssl_certfile
        })
        logger.info("SSL/TLS enabled")

    uvicorn.run(**uvicorn_config)


def run_health_check(base_url: Optional[str] = None) -> bool:
    """
    Check a running instance.

    The instance counts as healthy when it reports ready and no component is
    unhealthy. Degraded components (for example a missing legacy papers
    directory) are printed but do not fail the check.
    """
    import requests

    base_url = base_url or f"http://{settings.host}:{settings.port}"

    try:
        ready = requests.get(f"{base_url}/health/ready", timeout=10)
        print(f"Readiness: {ready.status_code} {ready.json().get('status')}")
        if ready.status_code != 200:
            return False

        detailed = requests.get(f"{base_url}/health/detailed", timeout=30)
        report = detailed.json()
        print(f"Overall: {report.get('status')} - {report.get('message')}")
        for component in report.get("components", []):
            print(f"  {component['name']:<22} {component['status']:<10} {component['message']}")

        return detailed.status_code == 200

    except requests.exceptions.RequestException as e:
        print(f"Health check failed: {e}")
        return False
    except json.JSONDecodeError as e:
        print(f"Health check returned a non-JSON response: {e}")
        return False


def run_sweep(max_age_seconds: Optional[int] = None, directory: Optional[str] = None) -> bool:
    """Remove temporary artifacts left behind by a crashed process"""
    from services.artifact_store import ArtifactStore

    logger.info("Sweeping stale temporary artifacts...")

    try:
        artifact_store = ArtifactStore(directory or settings.temp_directory)
        removed = artifact_store.sweep_stale(max_age_seconds)
    except OSError as e:
        logger.error(f"Artifact sweep failed: {e}")
        return False

    print(f"Removed {removed} stale artifact(s) from {artifact_store.directory}")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Document Translation Service Runner")
    parser.add_argument(
        "command",
        choices=["server", "health", "sweep"],
        help="Command to run"
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Base URL of the instance to check (health only)"
    )
    parser.add_argument(
        "--max-age",
        type=int,
        default=None,
        help="Age in seconds after which an artifact counts as stale (sweep only)"
    )
    return parser


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    if args.command == "server":
        run_server()
    elif args.command == "health":
        success = run_health_check(args.url)
        sys.exit(0 if success else 1)
    elif args.command == "sweep":
        from utils.logging import setup_logging
        setup_logging()
        success = run_sweep(args.max_age)
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
