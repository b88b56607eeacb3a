# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"). You
# may not use this file except in compliance with the License. A copy of
# the License is located at
#
#     http://aws.amazon.com/apache2.0/
#
# or in the "license" file accompanying this file. This file is
# distributed on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF
# ANY KIND, either express or implied. See the License for the specific
# language governing permissions and limitations under the License.
"""Errors raised when JumpStart metadata rules out a request."""
from __future__ import absolute_import

from typing import Iterable, Optional

from sagemaker_common.jumpstart.enums import JumpStartScriptScope


class JumpStartHyperparametersError(ValueError):
    """A hyperparameter value breaks its definition in the model specs."""


class VulnerableJumpStartModelError(ValueError):
    """The requested scope of a model version depends on vulnerable packages.

    Only the scope in use matters: a model whose training script is vulnerable can
    still be deployed.
    """

    def __init__(
        self,
        model_id: Optional[str] = None,
        version: Optional[str] = None,
        vulnerabilities: Optional[Iterable[str]] = None,
        scope: Optional[JumpStartScriptScope] = None,
        message: Optional[str] = None,
    ):
        """Build the error from the model details, or take ``message`` as is.

        Raises:
            RuntimeError: If there is no message and a model detail is missing.
            NotImplementedError: If ``scope`` is not a JumpStart script scope.
        """
        if not message:
            if model_id is None or version is None or vulnerabilities is None or scope is None:
                raise RuntimeError(
                    "Either a message or the model ID, version, vulnerabilities and scope "
                    "are required."
                )
            if scope not in set(JumpStartScriptScope):
                raise NotImplementedError(f"No vulnerability error for scope '{scope}'.")
            message = (
                f"The {JumpStartScriptScope(scope).value} script of JumpStart model "
                f"'{model_id}' version '{version}' depends on vulnerable packages "
                f"({', '.join(vulnerabilities)}). Use a newer version of the model or "
                "another model."
            )
        self.message = message
        super(VulnerableJumpStartModelError, self).__init__(message)


class DeprecatedJumpStartModelError(ValueError):
    """The requested model version is deprecated. Newer versions may still be usable."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        version: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            if model_id is None or version is None:
                raise RuntimeError("Either a message or the model ID and version are required.")
            message = (
                f"JumpStart model '{model_id}' version '{version}' is deprecated. "
                "Use a newer version of the model or another model."
            )
        self.message = message
        super(DeprecatedJumpStartModelError, self).__init__(message)
