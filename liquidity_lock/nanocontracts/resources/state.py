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

from __future__ import annotations

import dataclasses
import inspect
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import Field

from liquidity_lock.api_util import Resource, set_cors
from liquidity_lock.nanocontracts.types import ContractId
from liquidity_lock.utils.api import ErrorResponse, QueryParams, Response

if TYPE_CHECKING:
    from twisted.web.http import Request

    from liquidity_lock.nanocontracts.blueprint import Blueprint
    from liquidity_lock.nanocontracts.runner import Runner

logger = logging.getLogger(__name__)

NATIVE_BALANCE_KEYS = ("native", "00", "__all__")


class LiquidityLockStateResource(Resource):
    """ Implements a web server GET API to get the state of a contract.

    Fields, the native balance and results of view methods can be requested
    in a single call:

        GET ?id=<hex>&fields[]=total_contributed&balances[]=native&calls[]=get_contribution("<hex>")
    """
    isLeaf = True

    def __init__(self, runner: Runner) -> None:
        super().__init__()
        self.runner = runner

    def render_GET(self, request: Request) -> bytes:
        request.setHeader(b'content-type', b'application/json; charset=utf-8')
        set_cors(request, 'GET')

        params = NCStateParams.from_request(request)
        if isinstance(params, ErrorResponse):
            logger.info('rejected state query: %s', params.error)
            request.setResponseCode(400)
            return params.json_dumpb()

        try:
            contract_id = ContractId(bytes.fromhex(params.id))
        except ValueError:
            request.setResponseCode(400)
            error_response = ErrorResponse(success=False, error=f'Invalid id: {params.id}')
            return error_response.json_dumpb()

        if not self.runner.has_contract(contract_id):
            request.setResponseCode(404)
            error_response = ErrorResponse(success=False, error=f'Contract {params.id} does not exist.')
            return error_response.json_dumpb()

        blueprint_class = self.runner.get_blueprint_class(contract_id)
        contract = self.runner.get_readonly_contract(contract_id)

        # Get balances.
        balances: dict[str, NCBalanceSuccessResponse | NCValueErrorResponse] = {}
        for token in params.balances:
            if token not in NATIVE_BALANCE_KEYS:
                balances[token] = NCValueErrorResponse(errmsg='invalid token id')
                continue
            balance = self.runner.get_balance(contract_id)
            balances[token] = NCBalanceSuccessResponse(value=str(balance))

        # Get fields.
        fields: dict[str, NCValueSuccessResponse | NCValueErrorResponse] = {}
        for field in params.fields:
            try:
                value = self.get_field_value(contract, field)
            except (ValueError, TypeError):
                fields[field] = NCValueErrorResponse(errmsg='invalid format')
            except AttributeError:
                fields[field] = NCValueErrorResponse(errmsg='not a blueprint field')
            except KeyError:
                fields[field] = NCValueErrorResponse(errmsg='field not found')
            else:
                fields[field] = NCValueSuccessResponse(value=to_json(value))

        # Call view methods.
        calls: dict[str, NCValueSuccessResponse | NCValueErrorResponse] = {}
        for call_info in params.calls:
            try:
                method_name, method_args = parse_method_call(blueprint_class, call_info)
                value = self.runner.call_view_method(contract_id, method_name, *method_args)
            except Exception as e:
                calls[call_info] = NCValueErrorResponse(errmsg=repr(e))
            else:
                calls[call_info] = NCValueSuccessResponse(value=to_json(value))

        response = NCStateResponse(
            success=True,
            nc_id=params.id,
            blueprint_name=blueprint_class.__name__,
            fields=fields,
            balances=balances,
            calls=calls,
        )
        return response.json_dumpb()

    def get_field_value(self, contract: Blueprint, field: str) -> Any:
        """Resolve `name` or `name.key` where key is `b'<hex>'` or plain text.

        Keys on dataclass values name one of their fields, e.g.
        `vesting_data.b'<hex>'.liquidity_grant.released`.
        """
        name, *keys = field.split('.')
        if name not in type(contract).get_fields():
            raise AttributeError(name)
        value = getattr(contract, name)
        for key in keys:
            if dataclasses.is_dataclass(value) and not isinstance(value, type):
                if key not in {f.name for f in dataclasses.fields(value)}:
                    raise KeyError(key)
                value = getattr(value, key)
            else:
                value = value[self.parse_key(key)]
        return value

    def parse_key(self, key: str) -> Any:
        if key.startswith("b'") and key.endswith("'"):
            # Raises ValueError on invalid hex.
            return bytes.fromhex(key[2:-1])
        return key


def parse_method_call(blueprint_class: type[Blueprint], call_info: str) -> tuple[str, list[Any]]:
    """Parse `method(arg, ...)` where arguments are JSON literals.

    Strings passed to parameters annotated with a bytes type are read as hex.
    """
    method_name, sep, rest = call_info.partition('(')
    method_name = method_name.strip()
    if not sep or not rest.endswith(')'):
        raise ValueError(f'invalid method call: {call_info}')
    args = json.loads(f'[{rest[:-1]}]')

    method = getattr(blueprint_class, method_name, None)
    if method is None:
        raise ValueError(f'method not found: {method_name}')
    params = list(inspect.signature(method, eval_str=True).parameters.values())[1:]
    if len(args) > len(params):
        raise ValueError(f'too many arguments for {method_name}')

    parsed = []
    for arg, param in zip(args, params):
        annotation = param.annotation
        if isinstance(arg, str) and inspect.isclass(annotation) and issubclass(annotation, bytes):
            arg = annotation(bytes.fromhex(arg))
        parsed.append(arg)
    return method_name, parsed


def to_json(value: Any) -> Any:
    """Convert contract values to JSON friendly ones."""
    if isinstance(value, bytes):
        return value.hex()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, tuple) and hasattr(value, '_asdict'):
        return {k: to_json(v) for k, v in value._asdict().items()}
    if isinstance(value, dict):
        return {to_json(k) if isinstance(k, bytes) else str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json(v) for v in value]
    return value


class NCStateParams(QueryParams):
    id: str
    fields: list[str] = Field(alias='fields[]', default_factory=list)
    balances: list[str] = Field(alias='balances[]', default_factory=list)
    calls: list[str] = Field(alias='calls[]', default_factory=list)


class NCValueSuccessResponse(Response):
    value: Any


class NCBalanceSuccessResponse(Response):
    value: str


class NCValueErrorResponse(Response):
    errmsg: str


class NCStateResponse(Response):
    success: bool
    nc_id: str
    blueprint_name: str
    fields: dict[str, NCValueSuccessResponse | NCValueErrorResponse]
    balances: dict[str, NCBalanceSuccessResponse | NCValueErrorResponse]
    calls: dict[str, NCValueSuccessResponse | NCValueErrorResponse]
