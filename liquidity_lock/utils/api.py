# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from typing_extensions import Self

from liquidity_lock.api_util import get_args

if TYPE_CHECKING:
    from twisted.web.http import Request


class QueryParams(BaseModel):
    """Base model for the query string of a GET request.

    Keys ending in `[]` are kept as lists, every other key takes its first value.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @classmethod
    def from_request(cls, request: "Request") -> Union[Self, "ErrorResponse"]:
        encoding = "utf8"
        args = {
            key.decode(encoding): [value.decode(encoding) for value in values]
            for key, values in get_args(request).items()
        }
        return cls.from_args(args)

    @classmethod
    def from_args(cls, args: dict[str, list[str]]) -> Union[Self, "ErrorResponse"]:
        data = {
            key: values if key.endswith("[]") else values[0]
            for key, values in args.items()
            if values
        }
        try:
            return cls.model_validate(data)
        except ValidationError as error:
            return ErrorResponse(error=str(error))


class Response(BaseModel):
    model_config = ConfigDict(frozen=True)

    def json_dumpb(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class ErrorResponse(Response):
    success: bool = False
    error: str
