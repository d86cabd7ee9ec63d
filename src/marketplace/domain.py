"""Marketplace domain: delivery orders, competing supplier offers, crate
deposits and supplier payouts."""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
