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


class NCFail(Exception):
    """Raised by a contract method to abort the call.

    Every state change made during the call is rolled back by the runner."""
    pass


class NCInsufficientFunds(NCFail):
    """Raised when a transfer or deposit exceeds the available balance."""
    pass


class NCMethodNotFound(NCFail):
    """Raised when a method does not exist or is not callable from outside."""
    pass


class NCForbiddenAction(NCFail):
    """Raised when a call carries actions the method does not accept."""
    pass


class NCContractAlreadyExists(NCFail):
    pass


class NanoContractDoesNotExist(NCFail):
    pass


class NCViewMethodError(NCFail):
    """Raised when a view method is used to mutate state."""
    pass
