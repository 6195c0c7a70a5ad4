"""
Collection Archiver Service

Moves aging rows of a time-stamped table into daily gzipped archive files:
1. Finds the oldest record in the table
2. Writes each day's records to YYYY/MM/DD.json.gz in the configured store
3. Optionally deletes the archived records from the table

Stops at the retention cutoff, pausing between days.
"""

__version__ = "1.0.0"
