"""
CSV result logging for multibody simulations.

One file per entity category (bodies, joints, sensors, actuators), each
row keyed by simulation time. Rows are buffered in memory and written in
batches.
"""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, TextIO

CATEGORIES = ("bodies", "joints", "sensors", "actuators")

# Categories written only when the system has entities of that kind
OPTIONAL_CATEGORIES = ("sensors", "actuators")

# Body field -> component suffixes
BODY_FIELDS = {
    "p": ["x", "y", "z"],        # origin position, base frame
    "q": ["x", "y", "z", "w"],   # attitude base_R_body
    "v": ["x", "y", "z"],        # origin velocity, base frame
    "w": ["x", "y", "z"],        # angular rate, body frame
    "alpha": ["x", "y", "z"],    # spatial angular acceleration, body frame
    "a": ["x", "y", "z"],        # spatial linear acceleration, body frame
    "f": ["x", "y", "z"],        # external force, body frame
    "tau": ["x", "y", "z"],      # external moment about origin, body frame
}


def _body_values(body, field: str) -> Any:
    s = body.state
    if field == "p":
        return s.position_base
    if field == "q":
        return s.attitude_base
    if field == "v":
        return s.velocity_base
    if field == "w":
        return s.velocity.rotation
    if field == "alpha":
        return s.acceleration.rotation
    if field == "a":
        return s.acceleration.translation
    if field == "f":
        return s.external_force.translation
    if field == "tau":
        return s.external_force.rotation
    raise ValueError(f"Unknown body field '{field}'")


def result_headers(system, category: str, fields: list[str] | None = None) -> list[str]:
    """Column names for one category, starting with 't'."""
    hdr = ["t"]
    if category == "bodies":
        for b in system.bodies:
            for field in fields or list(BODY_FIELDS):
                hdr.extend(f"{b.name}.{field}_{c}" for c in BODY_FIELDS[field])
    elif category == "joints":
        for j in system.joints:
            hdr.extend(f"{j.name}.{n}" for n in j.model.state_names)
            hdr.extend(f"{j.name}.{n}" for n in j.model.accel_names)
    elif category == "sensors":
        for s in system.sensors:
            hdr.extend(f"{s.name}.{n}" for n in s.model.result_names)
    elif category == "actuators":
        for a in system.actuators:
            hdr.extend(f"{a.name}.{n}" for n in a.model.result_names)
    else:
        raise ValueError(f"Unknown category '{category}'. Valid options: {CATEGORIES}")
    return hdr


def result_values(system, category: str, fields: list[str] | None = None) -> list[float]:
    """Current values for one category, without the time column."""
    out: list[float] = []
    if category == "bodies":
        for b in system.bodies:
            for field in fields or list(BODY_FIELDS):
                out.extend(float(v) for v in _body_values(b, field))
    elif category == "joints":
        for j in system.joints:
            out.extend(float(v) for v in j.model.state_vector())
            out.extend(float(v) for v in j.cache.qdd)
    elif category == "sensors":
        for s in system.sensors:
            out.extend(float(v) for v in s.model.result_values())
    elif category == "actuators":
        for a in system.actuators:
            out.extend(float(v) for v in a.model.result_values())
    else:
        raise ValueError(f"Unknown category '{category}'. Valid options: {CATEGORIES}")
    return out


class ResultLogger:
    """
    Buffered CSV writer, one file per entity category.

    Parameters
    ----------
    directory : str | Path
        Output directory. Files are ``bodies.csv``, ``joints.csv``,
        ``sensors.csv`` and ``actuators.csv`` (the last two only if the
        system has sensors or actuators).
    buffer_size : int
        Number of rows to buffer before writing.
    body_fields : list[str] | None
        Body fields to log. Default: all of ``BODY_FIELDS``.

    Examples
    --------
    >>> with ResultLogger("output/run1/logs") as logger:
    ...     solver.integrate(system, x0, 0.0, 10.0,
    ...                      on_step=lambda k, t, x: logger.log(system))
    """

    def __init__(
        self,
        directory: str | Path,
        buffer_size: int = 1000,
        body_fields: list[str] | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.buffer_size = buffer_size
        self.body_fields = body_fields if body_fields is not None else list(BODY_FIELDS)

        invalid = set(self.body_fields) - set(BODY_FIELDS)
        if invalid:
            raise ValueError(
                f"Invalid fields: {invalid}. Valid options: {set(BODY_FIELDS)}"
            )

        self._buffers: dict[str, list[list[str]]] = {}
        self._files: dict[str, TextIO] = {}
        self._writers: dict[str, Any] = {}
        self._closed = False

        self.directory.mkdir(parents=True, exist_ok=True)

    def path(self, category: str) -> Path:
        return self.directory / f"{category}.csv"

    def __enter__(self) -> ResultLogger:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open(self, system) -> None:
        for category in CATEGORIES:
            if category in OPTIONAL_CATEGORIES and not getattr(system, category):
                continue
            f = open(self.path(category), "w", newline="", encoding="utf-8")
            writer = csv.writer(f)
            fields = self.body_fields if category == "bodies" else None
            writer.writerow(result_headers(system, category, fields))
            f.flush()
            self._files[category] = f
            self._writers[category] = writer
            self._buffers[category] = []

    def log(self, system) -> None:
        """
        Buffer one row per category at ``system.t``.

        Opens the files and writes headers on the first call.

        Raises
        ------
        RuntimeError
            If the logger has been closed. Call :meth:`reset` to reuse it.
        """
        if self._closed:
            raise RuntimeError(
                f"ResultLogger for {self.directory} is closed. Call reset() to start new files."
            )
        if not self._files:
            self._open(system)

        t = f"{system.t:.10f}"
        for category in self._files:
            fields = self.body_fields if category == "bodies" else None
            row = [t]
            row.extend(f"{v:.10e}" for v in result_values(system, category, fields))
            self._buffers[category].append(row)

        if len(self._buffers["bodies"]) >= self.buffer_size:
            self.flush()

    def flush(self) -> None:
        """Write buffered rows to disk and clear buffers."""
        for category, rows in self._buffers.items():
            if rows:
                self._writers[category].writerows(rows)
                self._files[category].flush()
                rows.clear()

    @property
    def started(self) -> bool:
        """True once files have been opened by :meth:`log`."""
        return bool(self._files)

    def _release(self) -> None:
        self.flush()
        for f in self._files.values():
            f.close()
        self._files.clear()
        self._writers.clear()
        self._buffers.clear()

    def close(self) -> None:
        """Flush remaining data and close all files. Further logging raises."""
        self._release()
        self._closed = True

    def reset(self) -> None:
        """
        Close current files and accept logging again.

        The next :meth:`log` rewrites every file from its header, so the
        previous contents are replaced.
        """
        self._release()
        self._closed = False
