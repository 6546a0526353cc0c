"""
Structured Logging

Every degraded outcome in FinBot (a failed pull, a lost push, a corrupt
local payload, an unreachable parser) is reported here and nowhere else.
Failures are logged, never re-raised into the UI flow.

Events are rendered as JSON lines through the stdlib logging backend.
"""

import logging

import structlog


_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog once per process."""
    global _configured
    
    logging.basicConfig(format="%(message)s", level=level.upper())
    
    if _configured:
        logging.getLogger().setLevel(level.upper())
        return
    
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str):
    """Get a bound structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
