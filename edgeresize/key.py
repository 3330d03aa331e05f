"""Canonical paths and keys shared by the viewer-request and origin-response handlers.

Grammar::

  Original key:  origin/<subpath>/<filename>
  Derived key:   resize/<subpath>/<width>x<height>/<format>/<filename>
  Rewritten URI: /resize/<subpath>/<dim0>x<dim1>/<format>/<basename>.<ext>
  Query param:   d=<width>x<height>
"""

import dataclasses
import re
from typing import Any, Optional
from urllib import parse

from edgeresize.typing import HttpPath, S3Key

ORIGINAL_PREFIX = 'origin'
DERIVED_PREFIX = 'resize'
DIMENSION_SEPARATOR = 'x'

source_path_re = re.compile(r'^/(.+)/([^/]+)\.([^/.]+)$')
derived_key_re = re.compile(rf'^{DERIVED_PREFIX}/(.+)/([0-9]+)x([0-9]+)/([^/]+)/(.+)$')


def key_from_path(path: HttpPath) -> S3Key:
  return S3Key(parse.unquote(path[1:]))


@dataclasses.dataclass(eq=True, frozen=True)
class Size:
  width: int
  height: int

  @classmethod
  def from_image(cls, image: Any) -> 'Size':
    return cls(image.get('width'), image.get('height'))

  def is_within(self, lower: int, upper: int) -> bool:
    return lower <= self.width <= upper and lower <= self.height <= upper


@dataclasses.dataclass(eq=True, frozen=True)
class Dimension:
  """Raw ``<width>x<height>`` pair taken from the ``d`` query parameter.

  Only the shape is checked here. Whether the parts are numbers within range is
  decided by the origin-response handler.
  """
  width: str
  height: str

  @classmethod
  def maybe_from_param(cls, value: str) -> Optional['Dimension']:
    ds = value.split(DIMENSION_SEPARATOR)
    if len(ds) != 2 or ds[0] == '' or ds[1] == '':
      return None

    return cls(ds[0], ds[1])


@dataclasses.dataclass(eq=True, frozen=True)
class SourcePath:
  subpath: str
  basename: str
  extension: str

  @classmethod
  def maybe_from_path(cls, path: HttpPath) -> Optional['SourcePath']:
    m = source_path_re.match(str(path))
    if m is None:
      return None

    return cls(m[1], m[2], m[3])

  @property
  def filename(self) -> str:
    return f'{self.basename}.{self.extension}'


@dataclasses.dataclass(eq=True, frozen=True)
class DerivedKey:
  subpath: str
  width: str
  height: str
  format: str
  filename: str

  @classmethod
  def from_source(cls, source: SourcePath, dimension: Dimension, format: str) -> 'DerivedKey':
    return cls(
        subpath=source.subpath,
        width=dimension.width,
        height=dimension.height,
        format=format,
        filename=source.filename)

  @classmethod
  def maybe_from_key(cls, key: S3Key) -> Optional['DerivedKey']:
    m = derived_key_re.match(str(key))
    if m is None:
      return None

    return cls(subpath=m[1], width=m[2], height=m[3], format=m[4], filename=m[5])

  def to_key(self) -> S3Key:
    return S3Key(
        f'{DERIVED_PREFIX}/{self.subpath}/'
        f'{self.width}{DIMENSION_SEPARATOR}{self.height}/{self.format}/{self.filename}')

  def to_path(self) -> HttpPath:
    return HttpPath(f'/{self.to_key()}')

  def original_key(self) -> S3Key:
    return S3Key(f'{ORIGINAL_PREFIX}/{self.subpath}/{self.filename}')

  def size(self) -> Optional[Size]:
    try:
      return Size(int(self.width), int(self.height))
    except ValueError:
      return None
