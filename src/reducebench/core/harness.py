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


import logging
import math
import time

import numpy as np

from reducebench.core import oracle
from reducebench.core.errors import (
	AcceleratorOperationFailure,
	ConfigurationError,
	ReduceBenchError,
	ValidationFailure,
)
from reducebench.core.kernels import COMBINE_KERNEL, GROUP_SIZE, REDUCE_KERNEL, is_power_of_two, num_groups

ELEMENT_SIZE = np.dtype(np.float32).itemsize

# Bytes moved per element: read, implicit write and one synthesis pass
TRAFFIC_FACTOR = 3


class Measurement:
	"""
	One profiling run of a primitive.

	Durations are whole microseconds. `total_us` spans copy-in, kernel and copy-out,
	which are measured back to back, so the three always add up to it.
	"""

	def __init__(
		self,
		name: str,
		size: int,
		group_size: int,
		durations: list,
		bandwidths: list,
		result: float = None,
		expected: float = None,
		tolerance: float = None,
		validated: bool = False,
	):
		self.name = name
		self.size = size
		self.group_size = group_size
		self.host_us, self.total_us, self.copy_in_us, self.kernel_us, self.copy_out_us = durations
		self.host_bandwidth, self.device_bandwidth = bandwidths
		self.result = result
		self.expected = expected
		self.tolerance = tolerance
		self.validated = validated

	@property
	def durations(self) -> list:
		return [self.host_us, self.total_us, self.copy_in_us, self.kernel_us, self.copy_out_us]

	@property
	def bandwidths(self) -> list:
		return [self.host_bandwidth, self.device_bandwidth]

	def as_dict(self) -> dict:
		return {
			"function": self.name,
			"size": self.size,
			"group_size": self.group_size,
			"durations_us": {
				"host": self.host_us,
				"total": self.total_us,
				"copy_in": self.copy_in_us,
				"kernel": self.kernel_us,
				"copy_out": self.copy_out_us,
			},
			"bandwidth_gbps": {
				"host": self.host_bandwidth,
				"device": self.device_bandwidth,
			},
			"result": self.result,
			"expected": self.expected,
			"tolerance": self.tolerance,
			"validated": self.validated,
		}


def now_us() -> int:
	return time.perf_counter_ns() // 1000


def bandwidth(n: int, elapsed_us: int, element_size: int = ELEMENT_SIZE) -> float:
	"""
	Effective bandwidth in GB/s for `n` elements processed in `elapsed_us` microseconds.
	"""
	if elapsed_us <= 0:
		return 0.0
	return (TRAFFIC_FACTOR * n * element_size * 1e-9) / (elapsed_us * 1e-6)


def reduction_tolerance(values, group_size: int = GROUP_SIZE, factor: float = 1.0) -> float:
	"""
	Rounding bound for the device sum of `values`.

	Each element passes through log2(group_size) tree additions inside its work-group
	and at most n / group_size additions in the serial combine.

	Args:
	    values: The reduced elements.
	    group_size: Work-items per work-group.
	    factor: Multiplier applied to the bound.

	Returns:
	    float: (log2(group_size) + n / group_size) * eps(float32) * sum(|x|) * factor
	"""
	eps = float(np.finfo(np.float32).eps)
	depth = math.log2(group_size) + len(values) // group_size
	magnitude = float(np.sum(np.abs(values), dtype=np.float64))
	return factor * depth * eps * magnitude


def check_launch_shape(size: int, group_size: int):
	if size <= 0:
		raise ConfigurationError(f"Input size must be positive, got {size}")
	if not is_power_of_two(group_size):
		raise ConfigurationError(f"Work-group size must be a power of two, got {group_size}")
	if size % group_size != 0:
		raise ConfigurationError(f"Work-group size {group_size} does not evenly divide the input size {size}")


def validate(result: float, expected: float, tolerance: float):
	if not math.isfinite(result) or abs(result - expected) > tolerance:
		raise ValidationFailure(result, expected, tolerance)


def measure_reduce(
	size: int,
	context,
	group_size: int = GROUP_SIZE,
	values=None,
	seed=None,
	tolerance_factor: float = 1.0,
) -> Measurement:
	check_launch_shape(size, group_size)
	if values is None:
		values = oracle.random_vector(size, seed)
	else:
		values = np.ascontiguousarray(values, dtype=np.float32)
		if len(values) != size:
			raise ConfigurationError(f"Expected {size} input values, got {len(values)}")

	groups = num_groups(size, group_size)
	scratch_bytes = group_size * ELEMENT_SIZE
	context.check_launch(group_size, scratch_bytes)
	logging.debug(f"reduce: size={size}, group_size={group_size}, groups={groups}, scratch={scratch_bytes}B")

	result = np.zeros(1, dtype=np.float32)
	reduce_kernel = context.kernel(REDUCE_KERNEL)
	combine_kernel = context.kernel(COMBINE_KERNEL)
	context.finish()

	t0 = now_us()
	expected = oracle.reduce(values)
	t1 = now_us()
	buffers = []
	try:
		d_values = context.to_device(values)
		buffers.append(d_values)
		d_partial = context.allocate(groups * ELEMENT_SIZE)
		buffers.append(d_partial)
		context.bind(reduce_kernel, d_values, d_partial, context.local_scratch(scratch_bytes))
		context.bind(combine_kernel, d_partial, np.int32(groups))
		context.finish()
		t2 = now_us()
		context.dispatch(reduce_kernel, (size,), (group_size,))
		context.dispatch(combine_kernel, (1,), (1,))
		context.finish()
		t3 = now_us()
		context.read(d_partial, result)
		t4 = now_us()
	except ReduceBenchError:
		try:
			context.release(*buffers)
		except AcceleratorOperationFailure as err:
			logging.error(f"Releasing buffers after a failed run also failed: {err}")
		raise
	context.release(*buffers)
	logging.debug(f"reduce timestamps (us): {[t0, t1, t2, t3, t4]}")

	device_sum = float(result[0])
	tolerance = reduction_tolerance(values, group_size, tolerance_factor)
	logging.debug(f"reduce: device={device_sum}, host={expected}, tolerance={tolerance}")
	validate(device_sum, expected, tolerance)

	return Measurement(
		"reduce",
		size,
		group_size,
		[t1 - t0, t4 - t1, t2 - t1, t3 - t2, t4 - t3],
		[bandwidth(size, t1 - t0), bandwidth(size, t3 - t2)],
		result=device_sum,
		expected=expected,
		tolerance=tolerance,
		validated=True,
	)


def measure_scan_inclusive(size: int, context=None, values=None, seed=None, **kwargs) -> Measurement:
	"""
	Host-only row: there is no device kernel for inclusive scan, so every accelerator
	phase reads 0 and nothing is validated.
	"""
	if size <= 0:
		raise ConfigurationError(f"Input size must be positive, got {size}")
	if values is None:
		values = oracle.random_vector(size, seed)

	t0 = now_us()
	oracle.scan_inclusive(values)
	t1 = now_us()
	logging.warning("scan-inclusive has no OpenCL kernel; only the host reference was timed.")

	return Measurement(
		"scan-inclusive",
		size,
		None,
		[t1 - t0, 0, 0, 0, 0],
		[bandwidth(size, t1 - t0), 0.0],
	)


PRIMITIVES = {
	"reduce": measure_reduce,
	"scan-inclusive": measure_scan_inclusive,
}


def measure(primitive: str, size: int, context, **kwargs) -> Measurement:
	if primitive not in PRIMITIVES:
		raise ConfigurationError(f"Unknown primitive {primitive!r}. Must be one of {', '.join(PRIMITIVES)}.")
	logging.info(f"Measuring {primitive} over {size} elements")
	return PRIMITIVES[primitive](size, context, **kwargs)
