"""ETL layers for the e-commerce marts pipeline.

- ``raw``: bronze CSV reader
- ``normalize``: typed silver snapshot (uses ``cleaning_utils`` and ``attribution``)
- ``metrics``/``windows``/``timebuckets``/``funnel``: aggregation building blocks
- ``writer``/``metadata``: atomic gold-layer output
- ``api``: load, build and run entry points
"""
