from aws_lambda_powertools.utilities.typing import LambdaContext

from edgeresize.originresponse import index as originresponse
from edgeresize.typing import (
    OriginResponseEvent,
    Request,
    Response,
    ResponseResult,
    ViewerRequestEvent
)
from edgeresize.viewerrequest import index as viewerrequest


def viewer_request_lambda_handler(
    event: ViewerRequestEvent,
    _: LambdaContext,
) -> Request:
  # # For debugging
  # print('event:')
  # print(json.dumps(event))

  ret = viewerrequest.lambda_main(event)

  # # For debugging
  # print('return:')
  # print(json.dumps(ret))

  return ret


def origin_response_lambda_handler(
    event: OriginResponseEvent,
    _: LambdaContext,
) -> Response | ResponseResult:
  # # For debugging
  # print('event:')
  # print(json.dumps(event))

  ret = originresponse.lambda_main(event)

  # # For debugging
  # print('return:')
  # print(json.dumps(ret))

  return ret
