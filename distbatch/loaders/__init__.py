"""Loaders turning on-disk package trees into descriptors."""

from distbatch.loaders.descriptor_loader import (
    DEFAULT_DESCRIPTOR_NAME,
    load_descriptor,
    load_descriptors,
)

__all__ = ["DEFAULT_DESCRIPTOR_NAME", "load_descriptor", "load_descriptors"]
