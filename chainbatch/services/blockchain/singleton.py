"""
Singleton pattern for BatchTransferService.

Provides global access to a single BatchTransferService instance.
`init_batch_transfer_service` is the application entry point: it configures
logging and builds the web3-backed service from settings.
"""

from typing import Any

from chainbatch.config.settings import Settings
from chainbatch.utils.logging import setup_logging


# Forward declaration to avoid circular import
_batch_transfer_service: Any = None


def get_batch_transfer_service():
    """
    Get the singleton batch transfer service instance.

    Returns:
        BatchTransferService instance

    Raises:
        RuntimeError: If service not initialized
    """
    global _batch_transfer_service
    if _batch_transfer_service is None:
        raise RuntimeError("BatchTransferService not initialized")
    return _batch_transfer_service


def init_batch_transfer_service(settings: Settings, configure_logging: bool = True) -> None:
    """
    Initialize the singleton batch transfer service instance.

    Args:
        settings: Application settings
        configure_logging: Install logger sinks from settings first
            (disable when the host application owns logging)
    """
    global _batch_transfer_service
    if configure_logging:
        setup_logging(settings)

    # Import here to avoid circular dependency
    from chainbatch.services.blockchain.service_facade import BatchTransferService
    _batch_transfer_service = BatchTransferService.from_settings(settings)


def reset_batch_transfer_service() -> None:
    """Close and drop the singleton instance."""
    global _batch_transfer_service
    if _batch_transfer_service is not None:
        _batch_transfer_service.close()
    _batch_transfer_service = None
