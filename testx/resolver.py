# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Setup resolution for annotated test functions.

Determines the arity of a test and, for one-parameter tests, locates the
sibling setup function. Lookup goes through the ``SetupLookup`` protocol so
the resolver can be driven by synthetic scopes in tests.

Resolution rules:
- Two or more parameters: AmbiguousParameterCount, checked first
- No parameter: NoSetup, no lookup at all
- One parameter: the innermost scope must define the setup name exactly,
  otherwise MissingSetup. There is no fallback to outer scopes.
- One parameter with ``no_setup=True``: MissingSetup, nothing is looked up
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from .errors import AmbiguousParameterCountError, MissingSetupError
from .parser.data import FunctionDescriptor, Scope
from .plan import ExpansionPlan, NoSetup, RequiresSetup

logger = logging.getLogger(__name__)

DEFAULT_SETUP_NAME = "setup"


@runtime_checkable
class SetupLookup(Protocol):
    """Resolve a function by exact name in a scope."""

    def find(self, scope: Scope, name: str) -> Optional[FunctionDescriptor]:
        """Return the function named ``name`` in ``scope``, or None."""
        ...


class ScopeSetupLookup:
    """Lookup over the parsed sibling definitions of a scope."""

    def find(self, scope: Scope, name: str) -> Optional[FunctionDescriptor]:
        return scope.lookup(name)


class SetupResolver:
    """Turns an annotated function into an expansion plan.

    Args:
        lookup: Name resolution capability, defaults to scope lookup
        setup_name: Default setup function name when the marker names none
    """

    def __init__(self, lookup: Optional[SetupLookup] = None, setup_name: str = DEFAULT_SETUP_NAME):
        self.lookup = lookup if lookup is not None else ScopeSetupLookup()
        self.setup_name = setup_name

    def setup_name_for(self, test: FunctionDescriptor) -> str:
        if test.marker is not None and test.marker.setup_name:
            return test.marker.setup_name
        return self.setup_name

    def resolve(self, test: FunctionDescriptor, scope: Scope) -> ExpansionPlan:
        """Compute the expansion plan for one test.

        Raises:
            AmbiguousParameterCountError: Test declares two or more parameters
            MissingSetupError: One-parameter test without a setup in its scope,
                               or one that opts out with no_setup
        """
        if test.arity >= 2:
            names = ", ".join(p.name for p in test.parameters)
            raise AmbiguousParameterCountError(
                f"test function '{test.name}' declares {test.arity} parameters ({names}); "
                "at most one parameter can be supplied by setup",
                test.location,
            )

        if test.arity == 0:
            logger.debug(f"{test.name}: no parameter, no setup needed")
            return NoSetup(test)

        if test.marker is not None and test.marker.no_setup:
            raise MissingSetupError(
                f"test function '{test.name}' takes parameter '{test.parameters[0].name}' "
                "but opts out of setup with no_setup=True",
                test.location,
            )

        setup_name = self.setup_name_for(test)
        setup = self.lookup.find(scope, setup_name)
        if setup is None:
            raise MissingSetupError(
                f"test function '{test.name}' takes parameter '{test.parameters[0].name}' "
                f"but no function named '{setup_name}' is defined in the same scope",
                test.location,
            )

        logger.debug(f"{test.name}: parameter '{test.parameters[0].name}' supplied by {setup_name}()")
        return RequiresSetup(test=test, setup=setup, parameter=test.parameters[0])
