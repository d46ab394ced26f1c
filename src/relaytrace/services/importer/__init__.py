"""Descriptor importer service.

See Also:
    [Importer][relaytrace.services.importer.service.Importer]: The service class.
    [ImporterConfig][relaytrace.services.importer.configs.ImporterConfig]:
        Service configuration.
    [ImportCursor][relaytrace.services.importer.cursor.ImportCursor]:
        Persistent record of imported files.
"""

from .configs import ImporterConfig
from .cursor import ImportCursor
from .service import Importer


__all__ = ["ImportCursor", "Importer", "ImporterConfig"]
