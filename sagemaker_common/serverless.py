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
"""Settings of serverless SageMaker endpoints."""
from __future__ import absolute_import

from typing import Optional


class ServerlessInferenceConfig(object):
    """Memory and concurrency of a serverless endpoint variant.

    Pass it when deploying a model to get a serverless endpoint instead of one
    backed by instances.
    """

    def __init__(
        self,
        memory_size_in_mb: int = 2048,
        max_concurrency: int = 5,
        provisioned_concurrency: Optional[int] = None,
    ):
        """Create the config.

        Args:
            memory_size_in_mb (int): Memory of the endpoint, in 1024 MB steps from
                1024 to 6144. (Default: 2048).
            max_concurrency (int): Most invocations served at once. (Default: 5).
            provisioned_concurrency (int): Invocations kept warm. None leaves
                provisioned concurrency off. (Default: None).
        """
        self.memory_size_in_mb = memory_size_in_mb
        self.max_concurrency = max_concurrency
        self.provisioned_concurrency = provisioned_concurrency

    def _to_request_dict(self):
        """``ServerlessConfig`` of a CreateEndpointConfig production variant."""
        request = {"MemorySizeInMB": self.memory_size_in_mb, "MaxConcurrency": self.max_concurrency}
        if self.provisioned_concurrency is not None:
            request["ProvisionedConcurrency"] = self.provisioned_concurrency
        return request

    def __repr__(self):
        return (
            f"ServerlessInferenceConfig(memory_size_in_mb={self.memory_size_in_mb}, "
            f"max_concurrency={self.max_concurrency}, "
            f"provisioned_concurrency={self.provisioned_concurrency})"
        )
