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


import json
import logging

import pandas as pd

NAME_WIDTH = 19
COLUMN_WIDTH = 20

COLUMN_NAMES = [
	"host",
	"OpenCL total",
	"OpenCL copy-in",
	"OpenCL kernel",
	"OpenCL copy-out",
	"host bandwidth",
	"OpenCL bandwidth",
]


def format_header() -> str:
	return "function".rjust(NAME_WIDTH) + "".join(name.rjust(COLUMN_WIDTH) for name in COLUMN_NAMES)


def format_row(measurement) -> str:
	cells = [f"{us}us" for us in measurement.durations]
	cells += [f"{bw:g}GB/s" for bw in measurement.bandwidths]
	return measurement.name.rjust(NAME_WIDTH) + "".join(cell.rjust(COLUMN_WIDTH) for cell in cells)


def write_results(json_results, output_file: str = None):
	"""
	Writes the results to the output file.
	"""
	log_message = f"Writing results to {output_file}" if output_file is not None else "Writing results to stdout"
	logging.info(log_message)

	if output_file is None:
		print(json.dumps(json_results, indent=2))
	elif output_file.endswith(".json"):
		with open(output_file, "w") as f:
			json.dump(json_results, f, indent=2)
	elif output_file.endswith(".csv"):
		flattened_results = [flatten_dict(entry) for entry in json_results]
		df = pd.DataFrame(flattened_results)
		df.to_csv(output_file, index=False)
	elif output_file.endswith(".txt"):
		with open(output_file, "w") as f:
			f.write(json.dumps(json_results, indent=2))
	else:
		raise ValueError(f"Invalid output file extension for {output_file}. Must be .json, .csv, or .txt.")


def flatten_dict(d, parent_key="", sep="_"):
	items = []
	for k, v in d.items():
		new_key = f"{parent_key}{sep}{k}" if parent_key else k
		if isinstance(v, dict):
			items.extend(flatten_dict(v, new_key, sep=sep).items())
		else:
			items.append((new_key, v))
	return dict(items)
