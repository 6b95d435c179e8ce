from types import SimpleNamespace

import numpy as np
import pytest

from reducebench.core.context import ExecutionContext


class FakeBuffer:
	def __init__(self, data):
		self.data = data
		self.released = False

	def release(self):
		self.released = True


class FakeKernel:
	def __init__(self, name):
		self.function_name = name
		self.args = ()


class FakeContext(ExecutionContext):
	"""
	In-process stand-in for an OpenCL context.

	Kernels are replayed with numpy in float32, adding in the same order as the
	OpenCL source: a halving tree inside each group, then a serial pass over groups.
	"""

	def __init__(self, max_work_group_size=1024, local_mem_size=64 * 1024):
		device = SimpleNamespace(
			name="fake device",
			max_work_group_size=max_work_group_size,
			local_mem_size=local_mem_size,
		)
		super().__init__(SimpleNamespace(name="fake platform"), device, None, None, None)
		self.calls = []
		self.buffers = []

	def finish(self):
		self.calls.append("finish")

	def kernel(self, name):
		return FakeKernel(name)

	def to_device(self, host_array):
		self.calls.append("to_device")
		buffer = FakeBuffer(np.array(host_array, dtype=np.float32, copy=True))
		self.buffers.append(buffer)
		return buffer

	def allocate(self, nbytes):
		self.calls.append("allocate")
		buffer = FakeBuffer(np.zeros(nbytes // 4, dtype=np.float32))
		self.buffers.append(buffer)
		return buffer

	def local_scratch(self, nbytes):
		return np.zeros(nbytes // 4, dtype=np.float32)

	def bind(self, kernel, *args):
		self.calls.append(f"bind {kernel.function_name}")
		kernel.args = args

	def dispatch(self, kernel, global_size, local_size):
		self.calls.append(f"dispatch {kernel.function_name}")
		if kernel.function_name == "reduce":
			values, partial, scratch = kernel.args
			group_size = local_size[0]
			assert len(scratch) >= group_size
			groups = global_size[0] // group_size
			buff = values.data.reshape(groups, group_size).copy()
			offset = group_size // 2
			while offset > 0:
				buff[:, :offset] += buff[:, offset : 2 * offset]
				offset //= 2
			partial.data[:groups] = buff[:, 0]
		elif kernel.function_name == "combine":
			partial, groups = kernel.args
			total = np.float32(0)
			for j in range(int(groups)):
				total = np.float32(total + partial.data[j])
			partial.data[0] = total
		else:
			raise AssertionError(f"Unknown kernel {kernel.function_name}")

	def read(self, buffer, host_array):
		self.calls.append("read")
		host_array[:] = buffer.data[: len(host_array)]
		return host_array

	def release(self, *buffers):
		self.calls.append("release")
		for buffer in buffers:
			buffer.release()


@pytest.fixture
def fake_context():
	return FakeContext()


@pytest.fixture
def context_factory():
	return FakeContext
