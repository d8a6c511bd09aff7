"""
Entry point of the auto-secret operator
"""
import argparse
import asyncio
import logging
import os
import signal
import sys
from kubernetes_asyncio import client, config
from . import __version__
from .config import ConfigurationError, load_settings
from .controller import Controller
from .generators import build_registry
from .outcome import LoggingSink
from .reconciler import Reconciler
from .store import GENERATION_ANNOTATION, SecretStore
from .watcher import SecretWatcher
from .writer import ConflictResilientWriter

logger = logging.getLogger(__name__)


def build_argument_parser():
    """
    Command line flags, unset flags stay None so the configuration file applies
    """
    parser = argparse.ArgumentParser(
        prog="auto-secret",
        description="Fill in Secret keys listed in the %s annotation with generated values" % GENERATION_ANNOTATION)
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--namespace", help="Watch only this namespace instead of the whole cluster")
    parser.add_argument("--resync-interval", type=int, help="Seconds between full relists (default 300)")
    parser.add_argument("--workers", type=int, help="Secrets reconciled concurrently (default 2)")
    parser.add_argument("--debounce", type=float, help="Seconds to merge repeated events for a Secret (default 0.5)")
    parser.add_argument("--default-length", type=int, help="Length of generated strings without length parameter (default 32)")
    parser.add_argument("--max-conflict-retries", type=int, help="Write attempts per reconciliation (default 5)")
    parser.add_argument("--log-level", choices=("debug", "info", "warning", "error"), help="Log level (default info)")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Disable state mutation")
    return parser


def build_controller(api_client, settings):
    store = SecretStore(api_client, dry_run=settings.dry_run)
    writer = ConflictResilientWriter(store, max_attempts=settings.max_conflict_retries)
    reconciler = Reconciler(store, build_registry(settings.default_length), writer)
    watcher = SecretWatcher(api_client, namespace=settings.namespace,
                            resync_interval=settings.resync_interval)
    return Controller(watcher, reconciler, LoggingSink(),
                      workers=settings.workers, debounce=settings.debounce)


async def _run(settings):
    if os.getenv("KUBECONFIG"):
        await config.load_kube_config()
    else:
        config.load_incluster_config()

    async with client.ApiClient() as api_client:
        task = asyncio.ensure_future(build_controller(api_client, settings).run())
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, task.cancel)
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Shutting down on signal")


def main(argv=None):
    """
    Run the asyncio event loop for this operator
    """
    parser = build_argument_parser()
    try:
        settings = load_settings(vars(parser.parse_args(argv)))
    except ConfigurationError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Starting auto-secret-operator version %s", __version__)
    logger.debug("Running with %s", settings)
    if settings.dry_run:
        logger.info("Dry run, patches are validated by the API server but not persisted")

    try:
        asyncio.run(_run(settings))
    except config.ConfigException as e:
        logger.error("Could not load cluster configuration: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
