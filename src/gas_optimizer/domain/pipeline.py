# Network model: typed points, segments and the pipeline network graph.
from enum import Enum
from pathlib import Path
from typing import Annotated, Dict, Iterator, List, Literal, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import DEFAULT_FRICTION_FACTOR, DEFAULT_PRESSURE_DROP_CONSTANT
from ..exceptions import StructuralError


class ContractModel(BaseModel):
    """Base for every model exchanged with callers (camelCase on the wire)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
        extra="ignore",
        validate_assignment=True,
    )

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_json(cls, text: str):
        return cls.model_validate_json(text)


class PointType(str, Enum):
    RECEIPT = "Receipt"
    DELIVERY = "Delivery"
    COMPRESSOR = "Compressor"


class BasePoint(ContractModel):
    """Fields shared by every point variant"""

    id: str = Field(..., description="Unique point identifier")
    name: str = ""
    min_pressure: float = 0.0
    max_pressure: float = 0.0
    current_pressure: float = 0.0
    is_active: bool = True
    # Layout coordinates, presentation only
    x: float = 0.0
    y: float = 0.0

    @property
    def point_type(self) -> PointType:
        return PointType(self.type)

    def default_pressure(self) -> float:
        """Reported pressure when no simulation runs"""
        if self.min_pressure <= self.current_pressure <= self.max_pressure:
            return self.current_pressure
        return (self.min_pressure + self.max_pressure) / 2.0


class ReceiptPoint(BasePoint):
    """Network source injecting gas up to a supply cap"""

    type: Literal["Receipt"] = "Receipt"
    supply_capacity: float = 0.0
    unit_cost: float = 0.0


class DeliveryPoint(BasePoint):
    """Network sink consuming gas up to a demand requirement"""

    type: Literal["Delivery"] = "Delivery"
    demand_requirement: float = 0.0


class CompressorPoint(BasePoint):
    """Node able to raise downstream pressure at a fuel cost"""

    type: Literal["Compressor"] = "Compressor"
    max_pressure_boost: float = 0.0
    fuel_consumption_rate: float = 0.0  # fuel per unit boost per unit flow


Point = Annotated[Union[ReceiptPoint, DeliveryPoint, CompressorPoint], Field(discriminator="type")]

POINT_CLASSES: Dict[PointType, Type[BasePoint]] = {
    PointType.RECEIPT: ReceiptPoint,
    PointType.DELIVERY: DeliveryPoint,
    PointType.COMPRESSOR: CompressorPoint,
}


class Segment(ContractModel):
    """Capacity- and pressure-loss-bearing pipe between two points"""

    id: str = Field(..., description="Unique segment identifier")
    name: str = ""
    from_point_id: str = ""
    to_point_id: str = ""
    capacity: float = 0.0
    min_flow: float = 0.0  # 0 for unidirectional, -capacity for bidirectional
    length: float = 0.0
    diameter: float = 0.0
    friction_factor: float = DEFAULT_FRICTION_FACTOR
    pressure_drop_constant: float = DEFAULT_PRESSURE_DROP_CONSTANT
    transportation_cost: float = 0.0
    is_bidirectional: bool = False
    is_active: bool = True
    current_flow: float = 0.0

    @property
    def reverse_capacity(self) -> float:
        """Largest flow the segment may carry from its to-point to its from-point"""
        if not self.is_bidirectional:
            return 0.0
        return max(0.0, -self.min_flow)

    def connects(self, point_id: str) -> bool:
        return point_id in (self.from_point_id, self.to_point_id)

    def resistance(self, diameter_exponent: float = 5.0) -> float:
        """Coefficient K of the drop law p_from^2 - p_to^2 = K * |q|^a"""
        return (self.pressure_drop_constant * self.friction_factor * self.length
                / self.diameter ** diameter_exponent)


class PipelineNetwork(ContractModel):
    """Directed graph of points and segments handed to the engine by value"""

    name: str = ""
    description: str = ""
    points: Dict[str, Point] = Field(default_factory=dict)
    segments: Dict[str, Segment] = Field(default_factory=dict)

    # --- Editing -----------------------------------------------------------

    def add_point(self, point: BasePoint) -> BasePoint:
        if not point.id:
            raise StructuralError("Point id must not be empty")
        if point.id in self.points:
            raise StructuralError(f"Point {point.id} already exists")
        self.points[point.id] = point
        return point

    def add_segment(self, segment: Segment) -> Segment:
        if not segment.id:
            raise StructuralError("Segment id must not be empty")
        if segment.id in self.segments:
            raise StructuralError(f"Segment {segment.id} already exists")
        for point_id in (segment.from_point_id, segment.to_point_id):
            if point_id not in self.points:
                raise StructuralError(f"Segment {segment.id} references non-existent point {point_id}")
        if segment.from_point_id == segment.to_point_id:
            raise StructuralError(f"Segment {segment.id} connects point {segment.from_point_id} to itself")
        self.segments[segment.id] = segment
        return segment

    def remove_point(self, point_id: str) -> List[str]:
        """Drop a point and every segment touching it; returns removed segment ids"""
        if point_id not in self.points:
            raise StructuralError(f"Point {point_id} does not exist")
        del self.points[point_id]
        removed = [sid for sid, seg in self.segments.items() if seg.connects(point_id)]
        for sid in removed:
            del self.segments[sid]
        return removed

    def remove_segment(self, segment_id: str) -> Segment:
        if segment_id not in self.segments:
            raise StructuralError(f"Segment {segment_id} does not exist")
        return self.segments.pop(segment_id)

    # --- Queries -----------------------------------------------------------

    def active_points(self) -> Dict[str, BasePoint]:
        return {pid: p for pid, p in sorted(self.points.items()) if p.is_active}

    def active_segments(self) -> Dict[str, Segment]:
        """Active segments whose endpoints both exist and are active"""
        points = self.active_points()
        return {
            sid: seg for sid, seg in sorted(self.segments.items())
            if seg.is_active and seg.from_point_id in points and seg.to_point_id in points
        }

    def points_of_type(self, point_type, active_only: bool = True) -> List[BasePoint]:
        point_type = PointType(point_type)
        pool = self.active_points() if active_only else dict(sorted(self.points.items()))
        return [p for p in pool.values() if p.type == point_type.value]

    def receipts(self) -> List[ReceiptPoint]:
        return self.points_of_type(PointType.RECEIPT)

    def deliveries(self) -> List[DeliveryPoint]:
        return self.points_of_type(PointType.DELIVERY)

    def compressors(self) -> List[CompressorPoint]:
        return self.points_of_type(PointType.COMPRESSOR)

    def segments_at(self, point_id: str) -> Iterator[Segment]:
        for _, seg in sorted(self.segments.items()):
            if seg.connects(point_id):
                yield seg

    def total_demand(self) -> float:
        return sum(p.demand_requirement for p in self.deliveries())

    def total_supply(self) -> float:
        return sum(p.supply_capacity for p in self.receipts())

    def copy(self) -> "PipelineNetwork":
        return self.model_copy(deep=True)

    # --- Files -------------------------------------------------------------

    @classmethod
    def load_from_json(cls, path) -> "PipelineNetwork":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))

    def save_to_json(self, path) -> None:
        Path(path).write_text(self.to_json(), encoding="utf-8")
