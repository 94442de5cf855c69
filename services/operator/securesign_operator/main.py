"""Securesign Operator main application."""

import asyncio
import logging
import signal
from typing import Optional

from securesign_k8s import ClusterAccessor, ClusterConfig, ClusterConnection

from securesign_operator.config import Settings, get_settings
from securesign_operator.manager import Manager, build_controllers

logger = logging.getLogger(__name__)


class Application:
    """Main application orchestrator."""

    def __init__(self, settings: Settings):
        """
        Initialize application.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self.client: Optional[ClusterAccessor] = None
        self.manager: Optional[Manager] = None
        self._shutdown = False

    async def start(self) -> None:
        """Start the application."""
        logger.info("Starting Securesign Operator...")
        logger.info(f"   Version: {self.settings.version}")
        logger.info(f"   Namespace: {self.settings.watch_namespace or 'all'}")
        logger.info(f"   Kinds: {', '.join(self.settings.enabled_kinds)}")

        connection = ClusterConnection(
            ClusterConfig(
                kubeconfig_path=self.settings.kubeconfig_path,
                context=self.settings.kube_context,
                namespace=self.settings.watch_namespace,
            )
        )
        logger.info(f"   Kubernetes: {await asyncio.to_thread(connection.server_version)}")
        self.client = ClusterAccessor(connection)
        controllers = build_controllers(self.settings, self.client)
        self.manager = Manager(self.settings, self.client, controllers)
        await self.manager.start()

        logger.info("Securesign Operator started successfully")

        # Run until shutdown signal
        try:
            while not self._shutdown:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        """Stop the application."""
        logger.info("Shutting down Securesign Operator...")
        self._shutdown = True

        if self.manager:
            await self.manager.stop()
        if self.client:
            self.client.close()

        logger.info("Securesign Operator stopped")

    def handle_signal(self, sig: int) -> None:
        """
        Handle shutdown signals.

        Args:
            sig: Signal number
        """
        logger.info(f"Received signal {sig}, initiating shutdown...")
        self._shutdown = True


async def main() -> None:
    """Main entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = Application(settings)

    # Setup signal handlers
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.handle_signal, sig)

    try:
        await app.start()
    finally:
        await app.stop()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
