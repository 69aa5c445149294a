#!/usr/bin/env python3
"""
Generate Commands - Build commands for each request row of a CSV file
"""

import csv
import json
import sys

from command_builder import DEFAULT_VERSION, CommandBuilder


def generate_commands(input_file, output_file, silent=True):
    """Read kind/version/params rows and write them back with a generated_command column"""
    builder = CommandBuilder(silent=silent)
    generated = 0
    failed = 0

    with open(input_file, 'r', encoding='utf-8', errors='replace') as infile, \
         open(output_file, 'w', encoding='utf-8', newline='', errors='replace') as outfile:
        reader = csv.DictReader(infile)
        fieldnames = list(reader.fieldnames or [])
        if 'generated_command' not in fieldnames:
            fieldnames.append('generated_command')
        writer = csv.DictWriter(outfile, fieldnames=fieldnames)
        writer.writeheader()
        for row in reader:
            kind = (row.get('kind') or '').strip()
            version = (row.get('version') or '').strip() or DEFAULT_VERSION
            try:
                params = json.loads(row.get('params') or '{}')
                row['generated_command'] = builder.build_command(kind, params, version)
                generated += 1
            except (ValueError, TypeError, KeyError) as e:
                print(f"Error generating {kind or '?'} command for {version}: {e}")
                row['generated_command'] = ''
                failed += 1
            writer.writerow(row)

    print(f"Generated {generated} commands ({failed} failed)")
    return generated, failed


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python generate_commands.py <input_requests_csv> <output_commands_csv>")
        sys.exit(1)
    input_file = sys.argv[1]
    output_file = sys.argv[2]
    generate_commands(input_file, output_file)
