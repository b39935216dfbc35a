# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Expansion plans.

An expansion plan is the tagged variant produced by the setup resolver for a
single annotated function:

    NoSetup                      the test takes no parameter
    RequiresSetup(setup, param)  the test's parameter is fed by ``setup``

Plans are recomputed for every annotated function and never cached.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .parser.data import FunctionDescriptor, Parameter, TypeRef


@dataclass(frozen=True)
class NoSetup:
    """The test is emitted without a setup call."""
    test: FunctionDescriptor

    @property
    def requires_setup(self) -> bool:
        return False


@dataclass(frozen=True)
class RequiresSetup:
    """The test's single parameter is bound to the value returned by setup.

    Attributes:
        test: Annotated test function
        setup: Sibling setup function located by the resolver
        parameter: The test parameter receiving the value
    """
    test: FunctionDescriptor
    setup: FunctionDescriptor
    parameter: Parameter

    @property
    def requires_setup(self) -> bool:
        return True

    @property
    def parameter_type(self) -> Optional[TypeRef]:
        return self.parameter.annotation


ExpansionPlan = Union[NoSetup, RequiresSetup]
