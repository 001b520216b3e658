"""
=============================================================================
SERVER INSTANCE
=============================================================================

HTTPServer ties the components together and reacts to configuration
updates from the host.

=============================================================================
ONE SERVER, AT MOST ONE LISTENER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         HTTPServer                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   config      ServerConfig currently in effect                       │
    │   _listener   Listener or None                                       │
    │   _poller     PollScheduler or None                                  │
    │                                                                      │
    │   apply_config(cfg) ──► validate ──► stop() ──► start() if servable  │
    │   start()           ──► Listener ──► ConnectionHandler ──► Poller    │
    │   stop()            ──► cancel cadences ──► close Listener           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

All state lives on the instance. There is no module-level "current
socket" or "current settings". Everything happens synchronously inside
one host callback at a time, so no locking is needed.

=============================================================================
HOST INTEGRATION
=============================================================================

    scheduler = host.timers            # anything with schedule()/cancel()
    server = HTTPServer(scheduler)

    on_settings_changed:  server.apply_config(ServerConfig(...))
    on_unload:            server.shutdown()

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import (
    BindError,
    ConnectionHandler,
    Listener,
    PollScheduler,
    PollState,
    Scheduler,
)
from .handlers import StaticFileHandler


logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "tickhttpd"


class HTTPServer:
    """
    Cooperative static-file server embedded in a host's scheduler.

    =========================================================================
    USAGE
    =========================================================================

        loop = TimerLoop()
        server = HTTPServer(loop)
        server.apply_config(ServerConfig(run=True, webroot="./export"))
        loop.run()

    =========================================================================
    """

    def __init__(self, scheduler: Scheduler, config: Optional[ServerConfig] = None):
        """
        Args:
            scheduler: The host's scheduling capability.
            config:    Initial configuration. Nothing starts until
                       apply_config() or start() is called.
        """
        self.scheduler = scheduler
        self._config = config or ServerConfig()
        self._config.validate()

        self._listener: Optional[Listener] = None
        self._poller: Optional[PollScheduler] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._listener is not None and self._listener.is_listening

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), or None when stopped."""
        if self._listener is None:
            return None
        return self._listener.address

    @property
    def poll_state(self) -> PollState:
        if self._poller is None:
            return PollState.IDLE
        return self._poller.state

    @property
    def poller(self) -> Optional[PollScheduler]:
        return self._poller

    # =========================================================================
    # CONFIGURATION UPDATES
    # =========================================================================

    def apply_config(self, config: ServerConfig) -> None:
        """
        Replace the configuration and restart accordingly.

        The old listener is always torn down before the new configuration
        takes effect. Serving resumes only if the new configuration asks
        to run AND has a webroot.

        Raises:
            ValueError: Invalid configuration (nothing is changed).
            BindError:  The new listener could not be set up. The server
                        is left stopped.
        """
        config.validate()

        logger.info("Updating settings..")
        self._apply_debug(config.debug)
        for name, value in config.describe():
            logger.debug(f"\t{name} => {value}")

        self.stop()
        self._config = config

        if config.is_servable:
            self.start()
        elif config.run:
            logger.warning("Not starting: webroot has not been set yet")

    def _apply_debug(self, debug: bool) -> None:
        """The debug flag is the package's verbosity toggle."""
        level = logging.DEBUG if debug else logging.INFO
        logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """
        Create the listener and begin polling.

        Idempotent and self-healing: a listener left over from an unclean
        shutdown is closed first.

        Raises:
            BindError: Listener setup failed; nothing is left running.
        """
        if self._listener is not None or self._poller is not None:
            logger.info("Socket wasn't cleaned up, cleaning...")
            self.stop()

        logger.info("Starting listening...")

        listener = Listener(self._config)
        try:
            listener.start()
        except BindError:
            logger.error("Server stays stopped until reconfigured")
            raise

        handler = ConnectionHandler(
            listener,
            StaticFileHandler(self._config.webroot),
            buffer_size=self._config.buffer_size,
        )
        poller = PollScheduler(
            self.scheduler,
            listener,
            handler,
            slow_interval_ms=self._config.slow_poll_ms,
            fast_interval_ms=self._config.fast_poll_ms,
            max_fast_idle=self._config.max_fast_idle,
        )

        self._listener = listener
        self._poller = poller
        poller.start()

    def stop(self) -> None:
        """Cancel all cadences and close the listener. Idempotent."""
        if self._poller is None and self._listener is None:
            return

        logger.info("Stopping listening...")
        if self._poller is not None:
            self._poller.stop()
            self._poller = None
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    def shutdown(self) -> None:
        """Host unload hook."""
        logger.info("Shutting down server...")
        self.stop()
