"""
Count session record.
"""

from dataclasses import dataclass

from .detection import Detection, SpatialMarker, Template, new_id


@dataclass(frozen=True)
class CountSession:
    """
    One continuous counting interval.

    Sessions are immutable values. The controller swaps in a new instance
    on every command; a confirmed session is the snapshot handed to
    persistence.

    Attributes:
        id: Session identifier
        start_time: Epoch seconds when the session started
        template: Shape template in use
        end_time: Epoch seconds at confirmation (None while open)
        total_count: Confirmed count (0 while open)
        manual_additions: Boxes added by hand
        manual_removals: Boxes currently soft-deleted by hand
        detections: Detections confirmed into this session
        spatial_markers: Dedup markers known when the snapshot was taken
        synced_to_sheet: True once confirmed into a sheet
        sheet_id: Target sheet for the confirmed count
        row_id: Row allocated for the confirmed count
    """

    id: str
    start_time: float
    template: Template
    end_time: float | None = None
    total_count: int = 0
    manual_additions: int = 0
    manual_removals: int = 0
    detections: tuple[Detection, ...] = ()
    spatial_markers: tuple[SpatialMarker, ...] = ()
    synced_to_sheet: bool = False
    sheet_id: str | None = None
    row_id: str | None = None

    @classmethod
    def open(cls, template: Template, start_time: float) -> "CountSession":
        """Allocate a fresh, empty session."""
        return cls(id=new_id(), start_time=start_time, template=template)

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "template": self.template.value,
            "total_count": self.total_count,
            "manual_additions": self.manual_additions,
            "manual_removals": self.manual_removals,
            "detections": [d.to_dict() for d in self.detections],
            "spatial_markers": [m.to_dict() for m in self.spatial_markers],
            "synced_to_sheet": self.synced_to_sheet,
            "sheet_id": self.sheet_id,
            "row_id": self.row_id,
        }
