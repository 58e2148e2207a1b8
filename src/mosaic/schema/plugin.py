"""
Base plugin class for contributors to the composite schema.
"""

from abc import ABC, abstractmethod

from .declarations import SchemaFragment


class Plugin(ABC):
    """
    Abstract base class for all Mosaic plugins.

    A plugin contributes exactly one schema fragment: its type, input, query
    and mutation declarations plus the resolvers that back them. Fragments are
    collected once, during the build phase, and never change afterwards.
    """

    # Class attributes that subclasses must define
    name: str
    description: str

    @abstractmethod
    def fragment(self) -> SchemaFragment:
        """
        Return the schema fragment this plugin contributes.

        Returns:
            SchemaFragment: Declarations and resolvers, namespaced by the plugin
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"
