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


# Work-items per work-group. Must be a power of two.
GROUP_SIZE = 128

# Entry points compiled from REDUCE_SOURCE
REDUCE_KERNEL = "reduce"
COMBINE_KERNEL = "combine"

# Two-level tree reduction.
#
# `reduce` folds each work-group's slice in local scratch memory and publishes one
# partial sum per group. OpenCL cannot synchronise work-groups inside a kernel, so the
# cross-group step lives in `combine`, which is enqueued after `reduce` on the same
# in-order queue and runs on a single work-item.
REDUCE_SOURCE = r"""
kernel void reduce(global const float* a,
                   global float* partial,
                   local float* scratch) {
    const int m = get_local_size(0);
    const int t = get_local_id(0);
    const int k = get_group_id(0);

    scratch[t] = a[k * m + t];
    barrier(CLK_LOCAL_MEM_FENCE);

    for (int offset = m / 2; offset > 0; offset /= 2) {
        if (t < offset) {
            scratch[t] += scratch[t + offset];
        }
        barrier(CLK_LOCAL_MEM_FENCE);
    }

    if (t == 0) {
        partial[k] = scratch[0];
    }
}

kernel void combine(global float* partial, const int num_groups) {
    // Serial pass; does not scale with the number of groups.
    if (get_global_id(0) == 0) {
        float sum = 0;
        for (int j = 0; j < num_groups; j++) {
            sum += partial[j];
        }
        partial[0] = sum;
    }
}
"""


def is_power_of_two(value: int) -> bool:
	return value > 0 and (value & (value - 1)) == 0


def num_groups(size: int, group_size: int = GROUP_SIZE) -> int:
	return size // group_size
