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



class ReduceBenchError(Exception):
	"""Base class for every error raised while benchmarking."""


class ConfigurationError(ReduceBenchError, ValueError):
	"""The requested launch shape cannot run on the selected device."""


class PlatformUnavailable(ReduceBenchError):
	pass


class CompilationFailure(ReduceBenchError):
	def __init__(self, build_logs: dict):
		self.build_logs = build_logs
		super().__init__(f"Failed to build the OpenCL program for {len(build_logs)} device(s)")


class AcceleratorOperationFailure(ReduceBenchError):
	def __init__(self, operation: str, status: int, detail: str = ""):
		self.operation = operation
		self.status = status
		self.detail = detail
		message = f"OpenCL error in {operation}({status})"
		if detail:
			message += f": {detail}"
		super().__init__(message)


class ValidationFailure(ReduceBenchError):
	def __init__(self, result: float, expected: float, tolerance: float):
		self.result = result
		self.expected = expected
		self.tolerance = tolerance
		super().__init__(f"Invalid value: {result}, expected: {expected} (tolerance {tolerance})")
