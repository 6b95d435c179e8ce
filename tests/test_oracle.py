import numpy as np

from reducebench.core import kernels, oracle


def test_random_vector_is_float32_unit_interval():
	values = oracle.random_vector(4096, seed=0)
	assert values.dtype == np.float32
	assert len(values) == 4096
	assert values.min() >= 0.0 and values.max() < 1.0


def test_random_vector_seeded():
	assert np.array_equal(oracle.random_vector(64, seed=9), oracle.random_vector(64, seed=9))


def test_reduce_and_scan():
	values = np.arange(1, 9, dtype=np.float32)
	assert oracle.reduce(values) == 36.0
	assert list(oracle.scan_inclusive(values)) == [1, 3, 6, 10, 15, 21, 28, 36]


def test_kernel_shape_helpers():
	assert kernels.is_power_of_two(kernels.GROUP_SIZE)
	assert not kernels.is_power_of_two(96)
	assert not kernels.is_power_of_two(0)
	assert kernels.num_groups(1024, 128) == 8
	assert kernels.num_groups(10 * 1024 * 1024) == 81920


def test_source_defines_both_entry_points():
	assert f"kernel void {kernels.REDUCE_KERNEL}(" in kernels.REDUCE_SOURCE
	assert f"kernel void {kernels.COMBINE_KERNEL}(" in kernels.REDUCE_SOURCE
