import dataclasses
from typing import Any, Optional
from urllib import parse

from edgeresize.key import DerivedKey, Dimension, SourcePath
from edgeresize.log import init_logging
from edgeresize.typing import HttpPath, Request, ViewerRequestEvent

DIMENSION_PARAM = 'd'
WEBP_FORMAT = 'webp'

logger = init_logging(__name__)


@dataclasses.dataclass(frozen=True)
class Rewrite:
  reason: str
  uri: Optional[HttpPath] = None


def get_header(req: Request, name: str, default: str = '') -> str:
  if name not in req['headers'] or len(req['headers'][name]) == 0:
    return default

  return req['headers'][name][0]['value']


def negotiate_format(accept_header: str, extension: str) -> str:
  if WEBP_FORMAT in accept_header:
    return WEBP_FORMAT

  return extension


def rewrite(path: HttpPath, qs: dict[str, list[str]], accept_header: str) -> Rewrite:
  if DIMENSION_PARAM not in qs:
    return Rewrite(reason='no dimension')

  source = SourcePath.maybe_from_path(path)
  if source is None:
    return Rewrite(reason='unsupported path')

  dimension = Dimension.maybe_from_param(qs[DIMENSION_PARAM][0])
  if dimension is None:
    return Rewrite(reason='invalid dimension')

  format = negotiate_format(accept_header, source.extension)
  derived = DerivedKey.from_source(source, dimension, format)

  return Rewrite(reason='rewritten', uri=derived.to_path())


def log_debug(message: str, dict: dict[str, Any]) -> None:
  logger.debug({
      'message': message,
      **dict,
  })


def lambda_main(event: ViewerRequestEvent) -> Request:
  req = event['Records'][0]['cf']['request']
  path = req['uri']
  qstr = req.get('querystring', '')

  try:
    result = rewrite(
        path,
        parse.parse_qs(qstr, keep_blank_values=True),
        get_header(req, 'accept'),
    )
  except Exception as e:
    logger.error({
        'message': 'error during rewrite()',
        'path': path,
        'qstr': qstr,
        'reason': str(e),
    })
    return req

  if result.uri is not None:
    req['uri'] = result.uri

  log_debug('done', {'path': path, 'qstr': qstr, 'uri': req['uri'], 'reason': result.reason})

  return req
