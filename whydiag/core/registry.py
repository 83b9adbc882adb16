"""
Diagnostic Registry

Ordered, explicitly constructed collection of diagnostic modules. Built once
at start-up (see ``whydiag.modules.build_registry``) and passed to whoever
needs it; there is no process-wide instance.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from whydiag.core.base import BaseDiagnostic


class DiagnosticRegistry:
    """
    Registry of diagnostic modules keyed by name.

    Iteration order is registration order, which is the order "run all"
    uses.
    """

    def __init__(self, modules: Optional[Iterable[BaseDiagnostic]] = None):
        self._modules: Dict[str, BaseDiagnostic] = {}
        for module in modules or []:
            self.register(module)

    def register(self, module: BaseDiagnostic) -> None:
        """
        Register a module instance.

        Raises:
            TypeError: if module is not a BaseDiagnostic
            ValueError: if a module with the same name is already registered
        """
        if not isinstance(module, BaseDiagnostic):
            raise TypeError(f"Expected BaseDiagnostic, got {type(module)}")
        if module.name in self._modules:
            raise ValueError(f"Module already registered: {module.name}")
        self._modules[module.name] = module

    def get(self, name: str) -> Optional[BaseDiagnostic]:
        """Return the module for ``name`` or None if not found."""
        return self._modules.get(name)

    def require(self, name: str) -> BaseDiagnostic:
        """Return the module for ``name``; raise KeyError if not found."""
        module = self._modules.get(name)
        if module is None:
            raise KeyError(f"Unknown module: {name} (known: {', '.join(self._modules)})")
        return module

    def get_all(self) -> List[BaseDiagnostic]:
        return list(self._modules.values())

    def get_quick(self) -> List[BaseDiagnostic]:
        """Modules that are not marked as slow."""
        return [m for m in self._modules.values() if m.is_quick]

    def list_names(self) -> List[str]:
        return list(self._modules.keys())

    def __len__(self) -> int:
        return len(self._modules)

    def __iter__(self) -> Iterator[BaseDiagnostic]:
        return iter(list(self._modules.values()))

    def __contains__(self, name: str) -> bool:
        return name in self._modules
