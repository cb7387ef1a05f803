"""Orchestration module for xray-pipeline."""

from .mapping import MappingOrchestrator

__all__ = ["MappingOrchestrator"]
