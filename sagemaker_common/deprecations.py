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
"""Warnings for arguments and functions that were renamed or turned into no-ops."""
from __future__ import absolute_import

import functools
import logging
import warnings

logger = logging.getLogger(__name__)

V2_URL = "https://sagemaker.readthedocs.io/en/stable/v2.html"


def _warn(message):
    full_message = f"{message} in sagemaker>=2.\nSee: {V2_URL} for details."
    warnings.warn(full_message, DeprecationWarning, stacklevel=3)
    logger.warning(full_message)


def removed_warning(phrase):
    """Warn that ``phrase`` no longer has an effect."""
    _warn(f"{phrase} is a no-op")


def renamed_warning(phrase):
    """Warn that ``phrase`` goes by another name now."""
    _warn(f"{phrase} has been renamed")


def renamed_kwargs(old_name, new_name, value, kwargs):
    """Move a keyword argument passed under its old name to the new one.

    Args:
        old_name (str): Former argument name.
        new_name (str): Current argument name.
        value: Value given under ``new_name``, if any.
        kwargs (dict): Keyword arguments of the call. Updated in place.

    Returns:
        The value under ``old_name`` when it was passed, else ``value``.
    """
    if old_name in kwargs:
        value = kwargs.get(old_name, value)
        kwargs[new_name] = value
        renamed_warning(old_name)
    return value


def remove_arg(name, arg=None):
    """Warn if the removed argument ``name`` was given a value."""
    if arg is not None:
        removed_warning(name)


def removed_kwargs(name, kwargs):
    """Warn if the removed argument ``name`` is among ``kwargs``."""
    if name in kwargs:
        removed_warning(name)


def deprecated_function(func, name):
    """Wrap ``func`` to warn on each call that ``name`` was renamed."""

    @functools.wraps(func)
    def deprecate(*args, **kwargs):
        renamed_warning(f"The {name}")
        return func(*args, **kwargs)

    return deprecate
