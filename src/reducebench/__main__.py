#!/usr/bin/env python3
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



def reducebench_parser(argv=None):
	import argparse

	from reducebench.core.harness import PRIMITIVES

	parser = argparse.ArgumentParser(
		description="Benchmark an OpenCL tree reduction against a host reference.",
		prog="reducebench",
		formatter_class=lambda prog: argparse.RawTextHelpFormatter(prog, max_help_position=30),
		usage="""
        reducebench [options]

        Example:
        # Benchmark both primitives over the default 10M elements
        reducebench -v
        # Reduce 1M elements on a CPU device and save the rows as CSV
        REDUCEBENCH_DEVICE_TYPE=cpu reducebench -p reduce -s 1048576 -o results.csv
        """,
	)
	parser.add_argument(
		"-v",
		"--verbose",
		action="count",
		default=0,
		help="Increase verbosity level (e.g., -v, -vv, -vvv).",
	)

	optional_args = parser.add_argument_group("optional arguments")
	optional_args.add_argument(
		"-s",
		"--size",
		type=int,
		default=10 * 1024 * 1024,
		metavar="",
		help="Number of float32 elements per run (default: 10485760)",
	)
	optional_args.add_argument(
		"-p",
		"--primitive",
		choices=list(PRIMITIVES),
		action="append",
		metavar="",
		help="Primitive to benchmark, may be repeated.\nAvailable options: reduce, scan-inclusive (default: both)",
	)
	optional_args.add_argument(
		"--seed",
		type=int,
		default=None,
		metavar="",
		help="Seed for the random input vector (default: unseeded)",
	)
	optional_args.add_argument(
		"-t",
		"--tolerance_factor",
		type=float,
		default=1.0,
		metavar="",
		help="Scale the n * eps * sum(|x|) validation tolerance (default: 1.0)",
	)
	optional_args.add_argument("-o", "--output_file", type=str, metavar="", help="Path to the output file")

	args = parser.parse_args(argv)

	if args.size <= 0:
		parser.error("--size must be a positive number of elements.")
	if args.tolerance_factor < 0:
		parser.error("--tolerance_factor must not be negative.")
	if args.output_file and not args.output_file.endswith((".json", ".csv", ".txt")):
		parser.error("--output_file must end in .json, .csv, or .txt.")
	if not args.primitive:
		args.primitive = list(PRIMITIVES)

	return args


def main(argv=None):
	args = reducebench_parser(argv)

	# Set logging level based on verbosity
	import logging

	logging.raiseExceptions = True
	if args.verbose == 1:
		logging.basicConfig(level=logging.INFO, format="[REDUCEBENCH] %(levelname)s: %(message)s")
	elif args.verbose == 2:
		logging.basicConfig(level=logging.DEBUG, format="[REDUCEBENCH] %(levelname)s: %(message)s")
	elif args.verbose >= 3:
		logging.basicConfig(level=logging.NOTSET, format="[REDUCEBENCH] %(levelname)s: %(message)s")
	else:
		logging.basicConfig(level=logging.WARNING, format="[REDUCEBENCH] %(levelname)s: %(message)s")

	from reducebench.core.errors import (
		AcceleratorOperationFailure,
		CompilationFailure,
		PlatformUnavailable,
		ReduceBenchError,
	)
	from reducebench.utils.process import exit_on_fail

	try:
		run(args)
	except PlatformUnavailable as e:
		exit_on_fail(success=False, message=str(e))
	except CompilationFailure as e:
		build_logs = "\n".join(f"--- {device} ---\n{log}" for device, log in e.build_logs.items())
		exit_on_fail(success=False, message=str(e), log=build_logs)
	except AcceleratorOperationFailure as e:
		exit_on_fail(
			success=False,
			message=str(e),
			log=f"Search cl.h file for error code ({e.status}) to understand what it means:\n"
			"https://github.com/KhronosGroup/OpenCL-Headers/blob/master/CL/cl.h",
		)
	except ReduceBenchError as e:
		exit_on_fail(success=False, message=str(e))
	except Exception as e:
		exit_on_fail(success=False, message=f"Unexpected error: {e!r}")

	import sys

	sys.exit(0)


def run(args):
	import logging

	from reducebench.core.context import ExecutionContext
	from reducebench.core.harness import measure
	from reducebench.utils.env import get_device_type, get_platform_index
	from reducebench.utils.report import format_header, format_row, write_results

	context = None
	if "reduce" in args.primitive:
		context = ExecutionContext.create(get_platform_index(), get_device_type())
		logging.debug(f"Execution context: {context.describe()}")

	print(format_header(), flush=True)
	measurements = []
	for primitive in args.primitive:
		measurement = measure(
			primitive,
			args.size,
			context,
			seed=args.seed,
			tolerance_factor=args.tolerance_factor,
		)
		print(format_row(measurement), flush=True)
		measurements.append(measurement)

	if args.output_file:
		results = [measurement.as_dict() for measurement in measurements]
		write_results(results, args.output_file)


if __name__ == "__main__":
	main()
