"""Project descriptors and module discovery."""

from aggrecov.project.discovery import ModuleDiscovery
from aggrecov.project.models import ModuleDescriptor
from aggrecov.project.pom import PomLoader, descriptor_path_for, interpolate, load_project

__all__ = [
    "ModuleDescriptor",
    "ModuleDiscovery",
    "PomLoader",
    "descriptor_path_for",
    "interpolate",
    "load_project",
]
