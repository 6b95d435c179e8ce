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
from contextlib import contextmanager

import pyopencl as cl

from reducebench.core.errors import (
	AcceleratorOperationFailure,
	CompilationFailure,
	ConfigurationError,
	PlatformUnavailable,
)
from reducebench.core.kernels import REDUCE_SOURCE

DEVICE_TYPES = {
	"gpu": cl.device_type.GPU,
	"cpu": cl.device_type.CPU,
	"accelerator": cl.device_type.ACCELERATOR,
	"all": cl.device_type.ALL,
}


def status_code(err) -> int:
	# Errors constructed outside pyopencl carry no error record
	return getattr(err, "code", -1)


@contextmanager
def cl_try(operation: str):
	try:
		yield
	except cl.Error as err:
		raise AcceleratorOperationFailure(operation, status_code(err), str(err)) from err


def find_platform(platform_index: int = 0):
	try:
		platforms = cl.get_platforms()
	except cl.Error as err:
		raise PlatformUnavailable(f"Unable to find OpenCL platforms ({status_code(err)})") from err
	if not platforms:
		raise PlatformUnavailable("Unable to find OpenCL platforms")
	if not 0 <= platform_index < len(platforms):
		raise ConfigurationError(
			f"Platform index {platform_index} is out of range, {len(platforms)} platform(s) available"
		)
	return platforms[platform_index]


def find_devices(platform, device_type: str = "gpu"):
	if device_type not in DEVICE_TYPES:
		raise ConfigurationError(f"Unknown device type {device_type!r}. Must be one of {', '.join(DEVICE_TYPES)}.")
	try:
		devices = platform.get_devices(device_type=DEVICE_TYPES[device_type])
	except cl.Error as err:
		raise PlatformUnavailable(
			f"No {device_type} device found on platform {platform.name} ({status_code(err)})"
		) from err
	if not devices:
		raise PlatformUnavailable(f"No {device_type} device found on platform {platform.name}")
	return devices


def build_program(context, devices, source: str):
	program = cl.Program(context, source)
	try:
		return program.build(devices=devices)
	except cl.Error as err:
		logging.debug(f"Program build failed: {err}")
		build_logs = {}
		for device in devices:
			# pyopencl folds the log into the error when the cached build fails
			log = program.get_build_info(device, cl.program_build_info.LOG).strip()
			build_logs[device.name] = log or str(err)
		raise CompilationFailure(build_logs) from err


class ExecutionContext:
	"""
	An initialised OpenCL platform, device, context, program and command queue.

	Every harness call receives the context explicitly. The queue is in-order, so kernels
	enqueued one after the other observe each other's writes.
	"""

	def __init__(self, platform, device, context, program, queue):
		self.platform = platform
		self.device = device
		self.context = context
		self.program = program
		self.queue = queue

	@classmethod
	def create(cls, platform_index: int = 0, device_type: str = "gpu", source: str = REDUCE_SOURCE):
		platform = find_platform(platform_index)
		logging.info(f"Platform name: {platform.name}")
		devices = find_devices(platform, device_type)
		with cl_try("clCreateContext"):
			context = cl.Context(devices=devices)
		device = devices[0]
		logging.info(f"Device name: {device.name}")
		program = build_program(context, devices, source)
		with cl_try("clCreateCommandQueue"):
			queue = cl.CommandQueue(context, device)
		return cls(platform, device, context, program, queue)

	@property
	def max_work_group_size(self) -> int:
		return self.device.max_work_group_size

	@property
	def local_mem_size(self) -> int:
		return self.device.local_mem_size

	def finish(self):
		"""Block until every command enqueued so far has completed."""
		with cl_try("clFinish"):
			self.queue.finish()

	def kernel(self, name: str):
		with cl_try(f"clCreateKernel({name})"):
			return cl.Kernel(self.program, name)

	def to_device(self, host_array):
		"""Copy `host_array` into a new read-only device buffer through the queue."""
		with cl_try("clCreateBuffer"):
			buffer = cl.Buffer(self.context, cl.mem_flags.READ_ONLY, size=host_array.nbytes)
		with cl_try("clEnqueueWriteBuffer"):
			cl.enqueue_copy(self.queue, buffer, host_array, is_blocking=True)
		return buffer

	def allocate(self, nbytes: int):
		with cl_try("clCreateBuffer"):
			return cl.Buffer(self.context, cl.mem_flags.READ_WRITE, size=nbytes)

	def local_scratch(self, nbytes: int):
		return cl.LocalMemory(nbytes)

	def bind(self, kernel, *args):
		with cl_try(f"clSetKernelArg({kernel.function_name})"):
			kernel.set_args(*args)

	def dispatch(self, kernel, global_size: tuple, local_size: tuple):
		with cl_try(f"clEnqueueNDRangeKernel({kernel.function_name})"):
			return cl.enqueue_nd_range_kernel(self.queue, kernel, global_size, local_size)

	def read(self, buffer, host_array):
		"""Copy the first `host_array.nbytes` bytes of `buffer` into `host_array`."""
		with cl_try("clEnqueueReadBuffer"):
			cl.enqueue_copy(self.queue, host_array, buffer, is_blocking=True)
		return host_array

	def release(self, *buffers):
		"""Release every buffer, then raise the first failure if any release failed."""
		failure = None
		for buffer in buffers:
			try:
				with cl_try("clReleaseMemObject"):
					buffer.release()
			except AcceleratorOperationFailure as err:
				logging.debug(f"Buffer release failed: {err}")
				failure = failure or err
		if failure is not None:
			raise failure

	def check_launch(self, group_size: int, scratch_bytes: int):
		"""Reject a work-group shape the device cannot run."""
		if group_size > self.max_work_group_size:
			raise ConfigurationError(
				f"Work-group size {group_size} exceeds the device maximum of {self.max_work_group_size}"
			)
		if scratch_bytes > self.local_mem_size:
			raise ConfigurationError(
				f"Local scratch of {scratch_bytes} bytes exceeds the device's {self.local_mem_size} bytes"
			)

	def describe(self) -> dict:
		return {
			"platform": self.platform.name,
			"device": self.device.name,
			"max_work_group_size": self.max_work_group_size,
			"local_mem_size": self.local_mem_size,
		}
