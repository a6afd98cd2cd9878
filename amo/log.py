"""structlog setup for scripts and notebooks driving the solvers."""

import logging

import structlog


def configure_logging(verbose: bool = False) -> None:
    """Route structlog output to the console.

    Solver probes and decisions log at debug; unreachable targets at info.
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
