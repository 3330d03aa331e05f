from typing import Literal, NewType, NotRequired, ReadOnly, TypedDict

HttpPath = NewType('HttpPath', str)
S3Key = NewType('S3Key', str)


class Header(TypedDict):
  key: NotRequired[ReadOnly[str]]
  value: str


class S3Origin(TypedDict):
  customHeaders: dict[str, list[Header]]
  domainName: str
  path: str
  readTimeout: NotRequired[int]
  responseCompletionTimeout: NotRequired[int]
  authMethod: Literal['origin-access-identity', 'origin-access-control', 'none']
  region: NotRequired[str]


class Origin(TypedDict):
  s3: NotRequired[S3Origin]


class Request(TypedDict):
  method: NotRequired[ReadOnly[Literal['GET', 'HEAD', 'OPTIONS', 'TRACE', 'PUT', 'DELETE', 'POST',
                                       'PATCH', 'CONNECT']]]
  uri: HttpPath
  querystring: str
  headers: dict[str, list[Header]]
  clientIp: NotRequired[ReadOnly[str]]
  origin: NotRequired[Origin]


class ViewerRequestConfig(TypedDict):
  distributionDomainName: ReadOnly[str]
  distributionId: ReadOnly[str]
  eventType: ReadOnly[Literal['viewer-request']]
  requestId: ReadOnly[str]


class ViewerRequestRecord(TypedDict):
  config: NotRequired[ReadOnly[ViewerRequestConfig]]
  request: Request


class ViewerRequestRecordContainer(TypedDict):
  cf: ViewerRequestRecord


class ViewerRequestEvent(TypedDict):
  Records: list[ViewerRequestRecordContainer]


class OriginResponseConfig(TypedDict):
  distributionDomainName: ReadOnly[str]
  distributionId: ReadOnly[str]
  eventType: ReadOnly[Literal['origin-response']]
  requestId: ReadOnly[str]


class Response(TypedDict):
  headers: dict[str, list[Header]]
  status: str
  statusDescription: str


class OriginResponseRecord(TypedDict):
  config: NotRequired[ReadOnly[OriginResponseConfig]]
  request: Request
  response: Response


class OriginResponseRecordContainer(TypedDict):
  cf: OriginResponseRecord


class OriginResponseEvent(TypedDict):
  Records: list[OriginResponseRecordContainer]


class ResponseResult(TypedDict):
  body: NotRequired[str]
  bodyEncoding: NotRequired[Literal['text', 'base64']]
  headers: NotRequired[dict[str, list[Header]]]
  status: str
  statusDescription: NotRequired[str]
