import base64
import dataclasses
import logging
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from functools import partial
from http import HTTPStatus
from logging import Logger
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_s3.client import S3Client
from pyvips import Error as VipsError  # type: ignore
from pyvips import Image, Size as VipsSize  # type: ignore

from edgeresize.key import DerivedKey, Size, key_from_path
from edgeresize.log import init_logging
from edgeresize.typing import (
    OriginResponseEvent,
    Request,
    Response,
    ResponseResult,
    S3Key
)

NOT_FOUND_STATUSES = frozenset(['403', '404'])

DEFAULT_MAX_DIMENSION = 4000
DEFAULT_CACHE_MAX_AGE = 24 * 60 * 60

# Lambda@Edge caps generated origin-response bodies at 1 MiB.
MAX_BODY_SIZE = 1024 * 1024

PUT_WORKERS = 4
LOSSY_QUALITY = 80

logger = init_logging(__name__)


class OutputFormat(Enum):
  JPEG = 'jpeg'
  PNG = 'png'
  WEBP = 'webp'
  GIF = 'gif'
  AVIF = 'avif'

  @classmethod
  def maybe_from_token(cls, token: str) -> Optional['OutputFormat']:
    t = token.lower()
    if t == 'jpg':
      return cls.JPEG
    try:
      return cls(t)
    except ValueError:
      return None

  def content_type(self) -> str:
    return f'image/{self.value}'

  def extension(self) -> str:
    return f'.{self.value}'

  def save_options(self) -> dict[str, Any]:
    if self in [OutputFormat.JPEG, OutputFormat.WEBP, OutputFormat.AVIF]:
      return {'Q': LOSSY_QUALITY}
    return {}


@dataclasses.dataclass(frozen=True)
class InstantResponse:
  status: int
  b64_body: str
  cache_control: str
  content_type: str
  vips_us: int
  img_size: int


@dataclasses.dataclass(eq=True, frozen=True)
class XParams:
  region: str
  bucket: str
  max_dimension: int
  cache_max_age: int


def is_not_found_client_error(exception: ClientError) -> bool:
  if 'Error' not in exception.response:
    return False
  if 'Code' not in exception.response['Error']:
    return False
  return exception.response['Error']['Code'] in ['404', 'NoSuchKey']


def get_header(req: Request, name: str) -> str:
  if name in req['headers'] and req['headers'][name][0]['value'] != '':
    return req['headers'][name][0]['value']
  if 'origin' in req and 's3' in req['origin']:
    return req['origin']['s3']['customHeaders'][name][0]['value']
  raise KeyError(name)


def get_header_or(req: Request, name: str, default: str = '') -> str:
  try:
    return get_header(req, name)
  except KeyError:
    return default


def get_bucket(req: Request) -> str:
  bucket = get_header_or(req, 'x-env-bucket')
  if bucket != '':
    return bucket
  if 'host' in req['headers']:
    domain = req['headers']['host'][0]['value']
  else:
    domain = req['origin']['s3']['domainName']
  return domain.split('.', 1)[0]


class ImgResizer:
  instances: dict[XParams, 'ImgResizer'] = {}

  def __init__(
      self,
      log: logging.Logger,
      s3: S3Client,
      executor: Executor,
      bucket: str,
      max_dimension: int = DEFAULT_MAX_DIMENSION,
      cache_max_age: int = DEFAULT_CACHE_MAX_AGE,
      max_body_size: int = MAX_BODY_SIZE,
  ):
    self.log = log
    self.s3 = s3
    self.executor = executor
    self.bucket = bucket
    self.max_dimension = max_dimension
    self.max_body_size = max_body_size
    self.cache_control = f'max-age={cache_max_age}'
    self.log_context = {'path': ''}

  @classmethod
  def from_lambda(cls, log: Logger, req: Request) -> Optional['ImgResizer']:
    try:
      bucket = get_bucket(req)
      region = get_header(req, 'x-env-region')
      max_dimension = int(get_header_or(req, 'x-env-max-dimension', str(DEFAULT_MAX_DIMENSION)))
      cache_max_age = int(get_header_or(req, 'x-env-cache-max-age', str(DEFAULT_CACHE_MAX_AGE)))
    except KeyError as e:
      log.warning({
          'message': 'environment variable not found',
          'key': str(e),
      })
      return None
    except ValueError as e:
      log.warning({
          'message': 'invalid environment variable',
          'reason': str(e),
      })
      return None

    server_key = XParams(
        region=region, bucket=bucket, max_dimension=max_dimension, cache_max_age=cache_max_age)

    if server_key not in cls.instances:
      s3 = boto3.client('s3', region_name=region)
      cls.instances[server_key] = cls(
          log=log,
          s3=s3,
          executor=ThreadPoolExecutor(max_workers=PUT_WORKERS),
          bucket=bucket,
          max_dimension=max_dimension,
          cache_max_age=cache_max_age)

    return cls.instances[server_key]

  def log_warning(self, message: str, dict: dict[str, Any]) -> None:
    self.log.warning({
        'message': message,
        **self.log_context,
        **dict,
    })

  def log_debug(self, message: str, dict: dict[str, Any]) -> None:
    self.log.debug({
        'message': message,
        **self.log_context,
        **dict,
    })

  def log_error(self, message: str, dict: dict[str, Any]) -> None:
    self.log.error({
        'message': message,
        **self.log_context,
        **dict,
    })

  def set_log_context(self, path: str) -> None:
    self.log_context = {'path': path}

  def get_original(self, key: S3Key) -> Optional[bytes]:
    try:
      res = self.s3.get_object(Bucket=self.bucket, Key=key)
      return res['Body'].read()
    except ClientError as e:
      if is_not_found_client_error(e):
        self.log_debug('no orig', {'key': key})
      else:
        self.log_warning('failed to get orig', {'reason': str(e), 'key': key})
      return None
    except BotoCoreError as e:
      self.log_warning('failed to get orig', {'reason': str(e), 'key': key})
      return None

  def resize_image(self, data: bytes, target: Size, fmt: OutputFormat) -> bytes:
    # thumbnail applies the EXIF orientation before fitting the image inside the box.
    image: Image = Image.thumbnail_buffer(
        data, target.width, height=target.height, size=VipsSize.DOWN)
    self.log_debug(
        'resize param', {
            'target': target,
            'resized': Size.from_image(image),
            'format': fmt.value,
        })
    return image.write_to_buffer(fmt.extension(), **fmt.save_options())

  def on_put_generated(self, path: str, key: S3Key, future: Future) -> None:
    e = future.exception()
    if e is None:
      self.log.debug({'message': 'stored', 'path': path, 'key': key})
    else:
      self.log.error({
          'message': 'failed to store resized image',
          'path': path,
          'key': key,
          'reason': str(e),
      })

  def put_generated(self, key: S3Key, body: bytes, fmt: OutputFormat) -> Future:
    future = self.executor.submit(
        self.s3.put_object,
        Bucket=self.bucket,
        Key=key,
        Body=body,
        ContentType=fmt.content_type(),
        CacheControl=self.cache_control,
    )
    future.add_done_callback(partial(self.on_put_generated, self.log_context['path'], key))
    return future

  def process(self, key: S3Key) -> Optional[InstantResponse]:
    derived = DerivedKey.maybe_from_key(key)
    if derived is None:
      self.log_debug('invalid key format', {'key': key})
      return None

    target = derived.size()
    if target is None or not target.is_within(1, self.max_dimension):
      self.log_warning('invalid dimensions', {'width': derived.width, 'height': derived.height})
      return None

    fmt = OutputFormat.maybe_from_token(derived.format)
    if fmt is None:
      self.log_debug('unsupported format', {'format': derived.format})
      return None

    orig_key = derived.original_key()
    orig = self.get_original(orig_key)
    if orig is None:
      return None

    start_ns = time.time_ns()
    try:
      resized = self.resize_image(orig, target, fmt)
    except VipsError as e:
      self.log_warning('failed to resize', {'reason': str(e), 'key': orig_key})
      return None
    vips_us = (time.time_ns() - start_ns) // 1000

    self.put_generated(key, resized, fmt)

    b64_body = base64.b64encode(resized).decode()
    if self.max_body_size < len(b64_body):
      self.log_warning('too large to respond', {'key': key, 'body_size': len(b64_body)})
      return None

    return InstantResponse(
        status=HTTPStatus.OK,
        b64_body=b64_body,
        cache_control=self.cache_control,
        content_type=fmt.content_type(),
        vips_us=vips_us,
        img_size=len(resized))


def lambda_main(event: OriginResponseEvent) -> Response | ResponseResult:
  cf = event['Records'][0]['cf']
  req = cf['request']
  res = cf['response']

  if res['status'] not in NOT_FOUND_STATUSES:
    return res

  path = req['uri']

  try:
    server = ImgResizer.from_lambda(logger, req)
    if server is None:
      return res

    server.set_log_context(path)
    result = server.process(key_from_path(path))
  except Exception as e:
    logger.error({
        'message': 'error during process()',
        'path': path,
        'reason': str(e),
    })
    return res

  if result is None:
    return res

  response_result: ResponseResult = {
      'status': str(result.status),
      'statusDescription': HTTPStatus(result.status).phrase,
      'headers': {
          **res['headers'],
          'content-type': [{
              'key': 'Content-Type',
              'value': result.content_type,
          }],
          'cache-control': [{
              'key': 'Cache-Control',
              'value': result.cache_control,
          }],
      },
      'body': result.b64_body,
      'bodyEncoding': 'base64',
  }

  server.log_debug(
      'responded', {
          'uri': path,
          'status': result.status,
          'content_type': result.content_type,
          'img_size': result.img_size,
          'vips_us': result.vips_us,
      })

  return response_result
