"""Command-line surface: argparse router and output rendering."""
