"""Sample type and sample file I/O."""

from .sample import Sample
from .reader import SampleFile, SampleReader, write_samples

__all__ = [
    'Sample',
    'SampleFile',
    'SampleReader',
    'write_samples',
]
