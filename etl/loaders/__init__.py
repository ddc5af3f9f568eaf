"""
Destinations for transformed records.
"""

from etl.loaders.local_db_writer import Destination, LocalDBWriter, map_field_type

__all__ = ["Destination", "LocalDBWriter", "map_field_type"]
