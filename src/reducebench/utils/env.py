################################################################################
# MIT License

# Copyright (c) 2025 The reducebench authors. All Rights Reserved.

# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:

# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.

# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
################################################################################


import os

from reducebench.core.context import DEVICE_TYPES
from reducebench.utils.process import exit_on_fail


def get_platform_index():
	value = os.environ.get("REDUCEBENCH_PLATFORM", "0")
	exit_on_fail(
		success=value.isdigit(),
		message=f"Invalid REDUCEBENCH_PLATFORM value {value!r}. Must be a non-negative platform index.",
	)
	return int(value)


def get_device_type():
	device_type = os.environ.get("REDUCEBENCH_DEVICE_TYPE", "gpu").lower()
	exit_on_fail(
		success=device_type in DEVICE_TYPES,
		message=f"Invalid REDUCEBENCH_DEVICE_TYPE value {device_type!r}. Must be one of {', '.join(DEVICE_TYPES)}.",
	)
	return device_type
