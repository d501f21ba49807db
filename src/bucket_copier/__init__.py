"""
bucket-copier: A concurrent S3 bucket-to-bucket copier.

This package copies every object of a source bucket into a destination
bucket. A single lister enumerates the source listing, a fixed pool of
workers performs server-side copies, and an aggregator reports the
cumulative bytes copied.

The primary entry point for programmatic use is the `CopyPipeline` class.
"""

from typing import List

from bucket_copier.pipeline import CopyPipeline

__all__: List[str] = ["CopyPipeline"]
