# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Signature validation between a test and its setup function."""

import logging

from .errors import MalformedInputError, SetupHasArgumentsError, TypeMismatchError
from .parser.data import FunctionKind
from .plan import ExpansionPlan, RequiresSetup

logger = logging.getLogger(__name__)


def _describe(type_ref) -> str:
    return f"'{type_ref.text}'" if type_ref is not None else "no annotation"


class SignatureValidator:
    """Checks that a setup function can feed the test parameter.

    Types are compared as written: ``int`` and ``int`` match, ``int`` and
    ``float`` do not, and neither do ``List[int]`` and ``list[int]``.
    Errors are reported at the test location with a note at the setup.
    """

    def validate(self, plan: ExpansionPlan) -> ExpansionPlan:
        """Validate a plan and return it unchanged.

        Raises:
            SetupHasArgumentsError: The setup function declares parameters
            MalformedInputError: A setup method without a receiver parameter
            TypeMismatchError: Parameter and return types differ
        """
        if not isinstance(plan, RequiresSetup):
            return plan

        test, setup = plan.test, plan.setup
        notes = [(f"'{setup.name}' declared here", setup.location)]

        if setup.parameters:
            names = ", ".join(p.text for p in setup.parameters)
            raise SetupHasArgumentsError(
                f"setup function '{setup.name}' must not take parameters, found ({names})",
                test.location,
                notes,
            )

        # Called as receiver.setup(), which passes the instance
        if setup.kind == FunctionKind.METHOD and setup.receiver is None:
            raise MalformedInputError(
                f"setup method '{setup.name}' takes no receiver; declare it with "
                f"'self' or mark it @staticmethod",
                test.location,
                notes,
            )

        if setup.type_parameters:
            raise TypeMismatchError(
                f"setup function '{setup.name}' is generic ({setup.type_parameters}); "
                f"its return type cannot match parameter '{plan.parameter.name}'",
                test.location,
                notes,
            )

        if setup.is_async and not test.is_async:
            raise TypeMismatchError(
                f"async setup function '{setup.name}' cannot supply parameter "
                f"'{plan.parameter.name}' of synchronous test '{test.name}'",
                test.location,
                notes,
            )

        expected = plan.parameter_type
        actual = setup.return_type
        if expected != actual:
            raise TypeMismatchError(
                f"parameter '{plan.parameter.name}' of '{test.name}' has type {_describe(expected)} "
                f"but '{setup.name}' returns {_describe(actual)}",
                test.location,
                notes,
            )

        logger.debug(f"{test.name}: setup '{setup.name}' returns {_describe(actual)}")
        return plan
