"""Sketch comparator backed by the ``mash`` binary."""
from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import IO, Iterator

from assemblyhomology.domain.exceptions import (
    ComparatorStartError,
    ComparatorTimeoutError,
    MinHashError,
    MinHashInitError,
    NotASketchError,
    QueryCancelledError,
)
from assemblyhomology.domain.ids import ImplementationName, SketchDBName
from assemblyhomology.domain.models import (
    DistanceRecord,
    ImplementationInformation,
    MinHashParameters,
    SketchDatabase,
)
from assemblyhomology.minhash.comparator import Cancellation, SketchComparator

log = logging.getLogger(__name__)

MASH = "mash"
MASH_EXTENSION = ".msh"
DEFAULT_TIMEOUT_SEC = 30
_POLL_SEC = 0.1
_NOT_A_SKETCH_MARKER = "terminate called"


class Mash(SketchComparator):
    """Runs ``mash`` as a subprocess.

    Large outputs (sequence IDs, distances) are written to a temporary file in
    ``temp_dir`` that is removed once read.
    """

    def __init__(
        self,
        temp_dir: Path,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        executable: str = MASH,
    ) -> None:
        if timeout_sec < 1:
            raise ValueError("timeout_sec must be at least 1")
        self._temp_dir = Path(temp_dir)
        self._timeout = timeout_sec
        self._exe = executable
        try:
            self._temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MinHashInitError(str(e)) from e
        try:
            version = self._version(self._run(["-h"]))
        except MinHashError as e:
            raise MinHashInitError(str(e)) from e
        self._info = ImplementationInformation(
            ImplementationName(MASH), version, MASH_EXTENSION
        )
        log.info("Using %s version %s", MASH, version)

    @property
    def implementation_information(self) -> ImplementationInformation:
        return self._info

    @staticmethod
    def _version(help_output: str) -> str:
        lines = help_output.splitlines()
        if len(lines) < 2 or not lines[1].split():
            raise MinHashError(f"Unable to parse {MASH} version from help output")
        return lines[1].split()[-1]

    def _run(
        self,
        args: list[str],
        output: IO[bytes] | None = None,
        cancellation: Cancellation | None = None,
    ) -> str:
        """Run mash and return stdout, or an empty string if ``output`` receives it."""
        command = [self._exe, *args]
        try:
            proc = subprocess.Popen(
                command,
                stdout=output if output is not None else subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ComparatorStartError(f"Error running {MASH}: {e}") from e
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                out, err = proc.communicate(timeout=_POLL_SEC)
                break
            except subprocess.TimeoutExpired:
                if cancellation is not None and cancellation.cancelled:
                    self._kill(proc)
                    raise QueryCancelledError(f"{MASH} run was cancelled") from None
                if time.monotonic() >= deadline:
                    self._kill(proc)
                    raise ComparatorTimeoutError(
                        f"Timed out waiting for {MASH} to run"
                    ) from None
        stderr = (err or b"").decode("utf-8", errors="replace")
        if proc.returncode != 0:
            if _NOT_A_SKETCH_MARKER in stderr:
                raise NotASketchError(f"{MASH} could not read the input", stderr)
            raise MinHashError(f"Error running {MASH}: {stderr}")
        return (out or b"").decode("utf-8")

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        proc.kill()
        proc.communicate()

    def _run_to_file(
        self, args: list[str], cancellation: Cancellation | None = None
    ) -> Path:
        fd, name = tempfile.mkstemp(prefix="mash_output", suffix=".tmp", dir=self._temp_dir)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                self._run(args, output=f, cancellation=cancellation)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return path

    def _check_extension(self, location: Path) -> None:
        if location.suffix != MASH_EXTENSION:
            raise NotASketchError(
                f"{MASH} sketch files must end with {MASH_EXTENSION}: {location.name}"
            )

    def get_database(self, name: SketchDBName, location: Path) -> SketchDatabase:
        location = Path(location)
        self._check_extension(location)
        out = self._run(["info", "-H", str(location)])
        try:
            lines = out.splitlines()
            kmer_size = int(lines[2].split()[2])
            sketch_size = int(lines[4].split()[4])
            count = int(lines[5].split()[1])
        except (IndexError, ValueError) as e:
            raise MinHashError(f"Unexpected {MASH} info output for {location}: {e}") from e
        return SketchDatabase(
            name,
            self._info,
            MinHashParameters(kmer_size, sketch_size=sketch_size),
            location,
            count,
        )

    def get_sketch_ids(self, db: SketchDatabase) -> list[str]:
        path = self._run_to_file(["info", "-t", str(db.location)])
        try:
            with path.open(encoding="utf-8") as f:
                next(f, None)
                return [line.split()[2] for line in f if line.strip()]
        except IndexError as e:
            raise MinHashError(f"Unexpected {MASH} info output for {db.location}") from e
        finally:
            path.unlink(missing_ok=True)

    def iter_distances(
        self,
        query: SketchDatabase,
        reference: SketchDatabase,
        cancellation: Cancellation | None = None,
    ) -> Iterator[DistanceRecord]:
        if query.sequence_count != 1:
            raise ValueError("Only 1 query sequence is allowed")
        return self._distances(query.location, reference, cancellation)

    def _distances(
        self,
        query_location: Path,
        reference: SketchDatabase,
        cancellation: Cancellation | None,
    ) -> Iterator[DistanceRecord]:
        # mash runs on the first next(), so an unstarted iterator holds no temp file
        path = self._run_to_file(
            ["dist", "-d", "0.5", str(reference.location), str(query_location)],
            cancellation,
        )
        try:
            with path.open(encoding="utf-8") as f:
                for line in f:
                    if cancellation is not None and cancellation.cancelled:
                        raise QueryCancelledError(f"{MASH} distance read was cancelled")
                    cols = line.split()
                    if not cols:
                        continue
                    try:
                        record = DistanceRecord(float(cols[2]), reference.name, cols[0])
                    except (IndexError, ValueError) as e:
                        raise MinHashError(f"Unexpected {MASH} dist output: {line!r}") from e
                    yield record
        finally:
            path.unlink(missing_ok=True)
