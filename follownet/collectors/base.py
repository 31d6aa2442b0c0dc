"""
Base Collector Framework

Every collector works against one XClient and reports what it gathered
through logging. Subclasses implement collect() and get_name().
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from follownet.services.x_client import XClient

logger = logging.getLogger(__name__)


class BaseCollector(ABC):
    """
    Abstract base class for API collectors.

    Holds the shared client so that request pacing is shared too.
    """

    def __init__(self, client: Optional[XClient] = None):
        """
        Initialize the collector.

        Args:
            client: X API client (default: one built from settings)
        """
        self.client = client or XClient()

    @abstractmethod
    def collect(self, *args: Any, **kwargs: Any) -> Any:
        """Run the collection."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get the name of this collector for logging."""
        pass
