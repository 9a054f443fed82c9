"""Latest reliability code per sensor source."""

import logging
from typing import Dict

from ..core.types import Accuracy, SensorSource

logger = logging.getLogger(__name__)


class AccuracyTracker:
    """Records the accuracy last reported for each of the four sources."""

    def __init__(self):
        self._accuracy: Dict[SensorSource, Accuracy] = {}
        self.reset()

    def update(self, source: SensorSource, accuracy: Accuracy) -> None:
        """Store a new accuracy for one source."""
        source = SensorSource(source)
        accuracy = Accuracy(accuracy)
        previous = self._accuracy[source]
        self._accuracy[source] = accuracy
        if accuracy != previous:
            logger.info("%s accuracy: %s -> %s", source.name, previous.name, accuracy.name)

    def get(self, source: SensorSource) -> Accuracy:
        """Accuracy of one source."""
        return self._accuracy[SensorSource(source)]

    def snapshot(self) -> Dict[SensorSource, Accuracy]:
        """Copy of the accuracy of every source."""
        return dict(self._accuracy)

    def reset(self) -> None:
        """Mark every source UNRELIABLE."""
        self._accuracy = {source: Accuracy.UNRELIABLE for source in SensorSource}

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            source.name: {"accuracy": accuracy.name, "color": accuracy.color}
            for source, accuracy in self._accuracy.items()
        }
