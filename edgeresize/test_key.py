from typing import Optional

import pytest
from pyvips import Image  # type: ignore

from edgeresize.typing import HttpPath, S3Key

from .key import DerivedKey, Dimension, Size, SourcePath, key_from_path


@pytest.mark.parametrize(
    'value,expected', [
        ('300x300', Dimension('300', '300')),
        ('800x600', Dimension('800', '600')),
        ('abcxdef', Dimension('abc', 'def')),
        ('-1x5000', Dimension('-1', '5000')),
        ('invalid', None),
        ('', None),
        ('x', None),
        ('300x', None),
        ('x300', None),
        ('1x2x3', None),
        ('300X300', None),
    ],
    ids=[
        'square',
        'landscape',
        'not_numeric',
        'out_of_range',
        'no_separator',
        'empty',
        'separator_only',
        'no_height',
        'no_width',
        'too_many_parts',
        'upper_case_separator',
    ])
def test_dimension(value: str, expected: Optional[Dimension]) -> None:
  assert expected == Dimension.maybe_from_param(value)


@pytest.mark.parametrize(
    'path,expected', [
        ('/image/test.png', SourcePath('image', 'test', 'png')),
        ('/blog/posts/2024/04/19/cover.jpg', SourcePath('blog/posts/2024/04/19', 'cover', 'jpg')),
        ('/a/photo.min.JPG', SourcePath('a', 'photo.min', 'JPG')),
        ('/a/.hidden.png', SourcePath('a', '.hidden', 'png')),
        ('/test.png', None),
        ('/image/test', None),
        ('/image/test.', None),
        ('/image/.png', None),
        ('/image.d/test', None),
        ('/image/', None),
        ('//test.png', None),
    ],
    ids=[
        'single_dir',
        'nested_dirs',
        'dots_in_basename',
        'leading_dot',
        'no_dir',
        'no_extension',
        'empty_extension',
        'empty_basename',
        'dot_in_dir_only',
        'no_filename',
        'empty_dir',
    ])
def test_source_path(path: str, expected: Optional[SourcePath]) -> None:
  assert expected == SourcePath.maybe_from_path(HttpPath(path))


def test_source_path_filename() -> None:
  source = SourcePath.maybe_from_path(HttpPath('/a/b/photo.min.jpg'))
  assert source is not None
  assert 'photo.min.jpg' == source.filename


@pytest.mark.parametrize(
    'key,expected', [
        (
            'resize/blog/300x300/webp/cover.jpg',
            DerivedKey('blog', '300', '300', 'webp', 'cover.jpg'),
        ),
        (
            'resize/blog/posts/2024/04/19/300x200/jpg/cover.min.jpg',
            DerivedKey('blog/posts/2024/04/19', '300', '200', 'jpg', 'cover.min.jpg'),
        ),
        (
            'resize/image/0x4001/png/test.png',
            DerivedKey('image', '0', '4001', 'png', 'test.png'),
        ),
        ('resize/300x300/webp/cover.jpg', None),
        ('resize/blog/-1x300/webp/cover.jpg', None),
        ('resize/blog/abcx300/webp/cover.jpg', None),
        ('resize/blog/300x300/cover.jpg', None),
        ('origin/blog/cover.jpg', None),
        ('blog/resize/300x300/webp/cover.jpg', None),
    ],
    ids=[
        'simple',
        'nested',
        'out_of_range_is_still_shape',
        'no_subpath',
        'negative',
        'not_numeric',
        'no_format',
        'original',
        'not_prefixed',
    ])
def test_derived_key(key: str, expected: Optional[DerivedKey]) -> None:
  assert expected == DerivedKey.maybe_from_key(S3Key(key))


def test_derived_key_formats_back_to_same_key() -> None:
  key = S3Key('resize/blog/posts/300x200/webp/cover.min.jpg')
  derived = DerivedKey.maybe_from_key(key)
  assert derived is not None
  assert key == derived.to_key()
  assert f'/{key}' == derived.to_path()


def test_original_key() -> None:
  derived = DerivedKey('blog/posts', '300', '300', 'webp', 'cover.jpg')
  assert 'origin/blog/posts/cover.jpg' == derived.original_key()


@pytest.mark.parametrize(
    'width,height,expected', [
        ('300', '200', Size(300, 200)),
        ('0300', '0200', Size(300, 200)),
        ('abc', '200', None),
        ('300', '', None),
    ])
def test_derived_key_size(width: str, height: str, expected: Optional[Size]) -> None:
  assert expected == DerivedKey('a', width, height, 'webp', 'b.jpg').size()


@pytest.mark.parametrize(
    'size,expected', [
        (Size(1, 1), True),
        (Size(4000, 4000), True),
        (Size(300, 200), True),
        (Size(0, 300), False),
        (Size(300, 0), False),
        (Size(-1, 300), False),
        (Size(4001, 300), False),
        (Size(300, 999999), False),
    ])
def test_size_is_within(size: Size, expected: bool) -> None:
  assert expected == size.is_within(1, 4000)


def test_size_from_image() -> None:
  assert Size(40, 30) == Size.from_image(Image.black(40, 30))
  assert Size(1, 600) == Size.from_image(Image.black(1, 600, bands=3))


@pytest.mark.parametrize(
    'path,expected', [
        ('/resize/blog/300x300/webp/cover.jpg', 'resize/blog/300x300/webp/cover.jpg'),
        (
            '/resize/blog/300x300/webp/%E3%83%86%E3%82%B9%E3%83%88.jpg',
            'resize/blog/300x300/webp/テスト.jpg',
        ),
    ])
def test_key_from_path(path: str, expected: str) -> None:
  assert expected == key_from_path(HttpPath(path))


@pytest.mark.parametrize(
    'path,dimension,format', [
        ('/blog/posts/cover.jpg', '300x300', 'webp'),
        ('/image/test.png', '200x200', 'png'),
        ('/assets/images/gallery/photo-001.jpg', '800x600', 'webp'),
        ('/a/b/c/d/photo.min.jpeg', '1x4000', 'jpeg'),
    ])
def test_rewritten_path_is_parsed_back(path: str, dimension: str, format: str) -> None:
  source = SourcePath.maybe_from_path(HttpPath(path))
  dim = Dimension.maybe_from_param(dimension)
  assert source is not None
  assert dim is not None

  derived = DerivedKey.from_source(source, dim, format)

  assert derived == DerivedKey.maybe_from_key(key_from_path(derived.to_path()))
  assert f'origin{path}' == derived.original_key()
