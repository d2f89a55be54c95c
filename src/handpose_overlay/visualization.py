"""Optional point-cloud widget backed by rerun."""

from __future__ import annotations

import importlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType, ModuleType

from handpose_overlay.constants import ANCHOR_POINT_COLOR, HAND_POINT_COLOR
from handpose_overlay.exceptions import ConfigurationError, DependencyError
from handpose_overlay.pointcloud import PointCloudDataset, PointColorer

DEFAULT_COLOR_TABLE: Mapping[str, tuple[int, int, int]] = MappingProxyType(
    {
        HAND_POINT_COLOR: (70, 130, 180),
        ANCHOR_POINT_COLOR: (255, 255, 255),
        "red": (255, 0, 0),
    }
)


@dataclass(frozen=True, slots=True)
class RerunWidgetConfig:
    """Configuration for :class:`RerunPointCloudWidget`.

    :param application_id:
        Application identifier displayed in rerun.
    :param spawn:
        If ``True``, spawn a local rerun viewer on initialization.
    :param entity_path:
        Root entity path under which points and finger strips are logged.
    :param point_radius:
        Radius of dataset points in dataset units.
    :param line_radius:
        Radius of finger strips in dataset units.
    :param line_color:
        RGB color of finger strips.
    :param default_point_color:
        RGB color used before a point colorer is registered.
    :param background_color:
        Optional RGB background of the 3D view. White by default so anchor
        points painted white disappear.
    :param color_table:
        Mapping from colorer labels to RGB colors.
    """

    application_id: str = "handpose-overlay"
    spawn: bool = True
    entity_path: str = "hand"
    point_radius: float = 4.0
    line_radius: float = 1.5
    line_color: tuple[int, int, int] = (70, 130, 180)
    default_point_color: tuple[int, int, int] = (70, 130, 180)
    background_color: tuple[int, int, int] | None = (255, 255, 255)
    color_table: Mapping[str, tuple[int, int, int]] = field(
        default_factory=lambda: DEFAULT_COLOR_TABLE
    )

    def __post_init__(self) -> None:
        if not self.application_id:
            raise ConfigurationError("application_id must not be empty.")
        if self.point_radius <= 0 or self.line_radius <= 0:
            raise ConfigurationError("point_radius and line_radius must be greater than 0.")


class RerunPointCloudWidget:
    """Point-cloud widget that logs the hand dataset to `rerun`.

    This component is optional and requires installing the visualization extra.
    """

    def __init__(self, config: RerunWidgetConfig | None = None) -> None:
        """Create a rerun point-cloud widget.

        :param config:
            Optional widget configuration.
        :raises DependencyError:
            If `rerun-sdk` is not installed.
        """
        self._config = config or RerunWidgetConfig()
        self._rr = self._import_rerun()
        self._dataset: PointCloudDataset | None = None
        self._sequences: tuple[tuple[int, ...], ...] = ()
        self._colorer: PointColorer | None = None
        self._rr.init(self._config.application_id, spawn=self._config.spawn)
        self._apply_view_background()

    def render(self, dataset: PointCloudDataset) -> None:
        """Log a full dataset, replacing whatever was shown before."""
        self._dataset = dataset
        self._log_points()
        self._log_sequences()

    def set_sequences(self, sequences: Sequence[tuple[int, ...]]) -> None:
        """Register index sequences drawn as connected strips."""
        self._sequences = tuple(tuple(indices) for indices in sequences)
        self._log_sequences()

    def set_point_colorer(self, colorer: PointColorer) -> None:
        """Register the index-to-color-label callback and recolor the points."""
        self._colorer = colorer
        self._log_points()

    def update_dataset(self, dataset: PointCloudDataset) -> None:
        """Push an updated dataset using the registered sequences and colorer."""
        self._dataset = dataset
        self._log_points()
        self._log_sequences()

    def close(self) -> None:
        """Disconnect from the viewer. A spawned viewer window stays open."""
        if hasattr(self._rr, "disconnect"):
            self._rr.disconnect()

    def _log_points(self) -> None:
        if self._dataset is None:
            return
        points = [[x, y, z] for x, y, z in self._dataset.points]
        colors = [list(self._point_color(index)) for index in range(len(points))]
        self._rr.log(
            f"{self._config.entity_path}/points",
            self._rr.Points3D(
                points,
                radii=[self._config.point_radius] * len(points),
                colors=colors,
            ),
        )

    def _log_sequences(self) -> None:
        if self._dataset is None or not self._sequences:
            return
        points = self._dataset.points
        strips = [
            [list(points[index]) for index in indices if index < len(points)]
            for indices in self._sequences
        ]
        self._rr.log(
            f"{self._config.entity_path}/fingers",
            self._rr.LineStrips3D(
                strips,
                radii=[self._config.line_radius] * len(strips),
                colors=[list(self._config.line_color)] * len(strips),
            ),
        )

    def _point_color(self, index: int) -> tuple[int, int, int]:
        if self._colorer is None:
            return self._config.default_point_color
        label = self._colorer(index)
        return self._config.color_table.get(label, self._config.default_point_color)

    def _import_rerun(self) -> ModuleType:
        try:
            module = importlib.import_module("rerun")
        except ModuleNotFoundError as exc:
            raise DependencyError(
                "rerun is not installed. Install with: pip install handpose-overlay[visualization]"
            ) from exc

        return module

    def _apply_view_background(self) -> None:
        """Apply optional background color to the default 3D view."""
        if self._config.background_color is None:
            return

        if not hasattr(self._rr, "send_blueprint"):
            return

        try:
            blueprint_module = importlib.import_module("rerun.blueprint")
        except ModuleNotFoundError:
            return

        blueprint = blueprint_module.Blueprint(
            blueprint_module.Spatial3DView(
                origin="/",
                name="Hand Point Cloud",
                background=list(self._config.background_color),
            )
        )
        self._rr.send_blueprint(blueprint)
