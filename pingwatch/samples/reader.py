"""
SampleReader - load a recorded sample history from disk.

Two formats are supported, chosen by file suffix:

- CSV (.csv): header row with `timestamp` and `latency` columns, `seq`
  optional. A file missing a required column is rejected (E1002).
  An empty latency cell (or `null`/`none`/`timeout`) is a lost sample.
  Lines starting with '#' are comments.
- JSON lines (.jsonl, .ndjson): one object per line with the same keys;
  `"latency": null` is a lost sample, a missing key is malformed.

Malformed rows are skipped, logged and recorded on the SampleFile as
E1003 errors. They never abort the read. A latency must be a finite,
non-negative number in every format; booleans and NaN are malformed.
"""

import csv
import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .sample import Sample
from ..core.errors import ErrorCode, PingwatchError, PingwatchInputError

logger = logging.getLogger(__name__)

CSV_SUFFIXES = ('.csv',)
JSONL_SUFFIXES = ('.jsonl', '.ndjson')

LOSS_MARKERS = ('', 'null', 'none', 'timeout', 'loss')

CSV_REQUIRED_COLUMNS = ('timestamp', 'latency')


@dataclass
class SampleFile:
    """
    Metadata about an opened sample file.

    Attributes:
        path: Path to the sample file
        format: 'csv' or 'jsonl'
        errors: Rows skipped while reading (filled as the file is read)
    """
    path: Path
    format: str
    errors: List[PingwatchError] = field(default_factory=list)

    @property
    def skipped_rows(self) -> int:
        return sum(1 for e in self.errors if e.code == ErrorCode.E1003_MALFORMED_ROW)


def _parse_latency(raw) -> Optional[float]:
    """Latency in ms, None for a loss. Raises ValueError if malformed."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError(f"boolean latency {raw!r}")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if text.lower() in LOSS_MARKERS:
            return None
        value = float(text)
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"non-finite latency {value}")
    if value < 0:
        raise ValueError(f"negative latency {value}")
    return value


class SampleReader:
    """
    Read ordered sample histories.

    Usage:
        sample_file = SampleReader.open(path)
        samples = list(SampleReader.read(sample_file))
        print(sample_file.skipped_rows)

        # or
        for sample in SampleReader.read_path(path):
            monitor.process(sample)
    """

    @classmethod
    def open(cls, path: Path) -> SampleFile:
        """
        Open a sample file and detect its format.

        Raises:
            FileNotFoundError: If file doesn't exist
            PingwatchInputError: If the suffix is not a supported format (E1001)
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Sample file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in CSV_SUFFIXES:
            fmt = 'csv'
        elif suffix in JSONL_SUFFIXES:
            fmt = 'jsonl'
        else:
            raise PingwatchInputError(PingwatchError(
                code=ErrorCode.E1001_UNSUPPORTED_FORMAT,
                context={'file': str(path), 'suffix': suffix,
                         'expected': list(CSV_SUFFIXES + JSONL_SUFFIXES)},
            ))

        return SampleFile(path=path, format=fmt)

    @classmethod
    def read(cls, sample_file: SampleFile) -> Iterator[Sample]:
        """Yield samples in file order, skipping malformed rows."""
        if sample_file.format == 'csv':
            yield from cls._read_csv(sample_file)
        else:
            yield from cls._read_jsonl(sample_file)

    @classmethod
    def read_path(cls, path: Path) -> Iterator[Sample]:
        """Convenience method: open and read in one call."""
        sample_file = cls.open(path)
        yield from cls.read(sample_file)

    @classmethod
    def _skip(cls, sample_file: SampleFile, line: int, reason: str) -> None:
        logger.warning(f"{sample_file.path}:{line}: skipping row ({reason})")
        sample_file.errors.append(PingwatchError(
            code=ErrorCode.E1003_MALFORMED_ROW,
            context={'line': line, 'reason': reason},
        ))

    @classmethod
    def _read_csv(cls, sample_file: SampleFile) -> Iterator[Sample]:
        with open(sample_file.path, 'r', newline='') as f:
            lines = (line for line in f if not line.startswith('#'))
            reader = csv.DictReader(lines)

            if reader.fieldnames is None:
                return

            missing = [c for c in CSV_REQUIRED_COLUMNS if c not in reader.fieldnames]
            if missing:
                error = PingwatchError(
                    code=ErrorCode.E1002_MISSING_COLUMN,
                    context={'file': str(sample_file.path), 'missing': missing},
                )
                sample_file.errors.append(error)
                raise PingwatchInputError(error)

            seq = 0
            for line_no, row in enumerate(reader, start=2):
                try:
                    timestamp = int(float(row['timestamp']))
                    if row['latency'] is None:
                        raise ValueError("row has no latency field")
                    latency = _parse_latency(row['latency'])
                    seq_raw = row.get('seq')
                    seq_no = int(seq_raw) if seq_raw not in (None, '') else seq + 1
                except (TypeError, ValueError) as e:
                    cls._skip(sample_file, line_no, str(e))
                    continue

                seq += 1
                yield Sample(timestamp=timestamp, latency=latency, seq=seq_no)

    @classmethod
    def _read_jsonl(cls, sample_file: SampleFile) -> Iterator[Sample]:
        with open(sample_file.path, 'r') as f:
            seq = 0
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                try:
                    data = json.loads(line)
                    timestamp = int(data['timestamp'])
                    latency = _parse_latency(data['latency'])
                    seq_no = int(data['seq']) if data.get('seq') is not None else seq + 1
                except (KeyError, TypeError, ValueError) as e:
                    cls._skip(sample_file, line_no, str(e))
                    continue

                seq += 1
                yield Sample(timestamp=timestamp, latency=latency, seq=seq_no)


def write_samples(samples: Iterable[Sample], path: Path) -> int:
    """
    Write samples as CSV or JSON lines (by suffix). Returns rows written.

    Raises:
        ValueError: If the suffix is not a supported format
    """
    path = Path(path)
    suffix = path.suffix.lower()
    count = 0

    if suffix in CSV_SUFFIXES:
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(['timestamp', 'latency', 'seq'])
            for s in samples:
                writer.writerow([s.timestamp, '' if s.latency is None else s.latency, s.seq])
                count += 1
    elif suffix in JSONL_SUFFIXES:
        with open(path, 'w') as f:
            for s in samples:
                f.write(json.dumps(s.to_dict()) + '\n')
                count += 1
    else:
        raise ValueError(f"Unsupported sample file format '{suffix}'")

    return count
