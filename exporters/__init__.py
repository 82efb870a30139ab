# Exporters for block plan reports

from .block_plan_export import (
    ExportColumnOptions,
    MetaColumn,
    build_meta_columns,
    build_export_frame,
    build_totals_frame,
    build_export_filename,
)

__all__ = [
    'ExportColumnOptions',
    'MetaColumn',
    'build_meta_columns',
    'build_export_frame',
    'build_totals_frame',
    'build_export_filename',
]
