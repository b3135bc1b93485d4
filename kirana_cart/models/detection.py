# detection.py
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence


@dataclass(frozen=True)
class BoundingBox:
    """Normalized rectangle, every coordinate in 0..1"""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping) -> "BoundingBox":
        if not isinstance(data, Mapping):
            raise TypeError(f"bbox must be an object, got {type(data).__name__}")
        return cls(
            x=float(data.get('x', 0.0)),
            y=float(data.get('y', 0.0)),
            width=float(data.get('width', 0.0)),
            height=float(data.get('height', 0.0))
        )

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


@dataclass(frozen=True)
class Prediction:
    """One raw detector prediction"""
    class_name: str
    confidence: float
    box: BoundingBox

    @classmethod
    def from_dict(cls, data: Mapping) -> "Prediction":
        """
        Build a prediction from the detector's JSON shape

        Args:
            data: {'class': str, 'confidence': float, 'bbox': {x, y, width, height}}

        Returns:
            Prediction. A missing bbox becomes an empty rectangle.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"prediction must be an object, got {type(data).__name__}")
        bbox = data.get('bbox') or {}
        return cls(
            class_name=str(data['class']),
            confidence=float(data['confidence']),
            box=BoundingBox.from_dict(bbox)
        )

    def to_dict(self):
        return {
            'class': self.class_name,
            'confidence': self.confidence,
            'bbox': self.box.to_dict()
        }


# One capture's predictions, in detector order
DetectionSnapshot = List[Prediction]

# class name -> occurrences within one snapshot (read-only view)
FrameTally = Mapping[str, int]


def make_tally(counts: Mapping[str, int]) -> FrameTally:
    """Freeze a class -> count mapping into a FrameTally"""
    return MappingProxyType(dict(counts))


def tally_snapshot(snapshot: Sequence[Prediction]) -> FrameTally:
    """Group a snapshot's predictions by class and count occurrences"""
    counts: Dict[str, int] = {}
    for prediction in snapshot:
        counts[prediction.class_name] = counts.get(prediction.class_name, 0) + 1
    return make_tally(counts)
