"""Framework adapters bundling one library descriptor with its pipeline pieces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from .errors import UnsupportedFrameworkError
from .libraries import ReactLibrary, VueLibrary, build_react_library, build_vue_library
from .policy import ErrorPolicy
from .reporting import Reporter, silent_reporter
from .react.extractor import ReactTextExtractor
from .react.imports import DEFAULT_T_IMPORT, ReactImportManager
from .react.injector import ReactComponentInjector
from .react.restore import ReactRestoreTransformer
from .react.transformer import ReactTransformer
from .vue.extractor import VueTextExtractor
from .vue.imports import VueImportManager
from .vue.injector import VueComponentInjector
from .vue.restore import VueRestoreTransformer
from .vue.transformer import VueTransformer

FRAMEWORK_SUFFIXES = {
    "react": (".tsx", ".jsx", ".ts", ".js"),
    "vue": (".vue", ".ts", ".js"),
}


@dataclass
class FrameworkAdapter:
    """Builds the extractor, transformers, injector and import manager for one framework.

    Every piece shares the adapter's library descriptor, reporter and policy.
    """

    framework: str
    library: Union[ReactLibrary, VueLibrary]
    t_import: str = DEFAULT_T_IMPORT
    reporter: Reporter | None = None
    policy: ErrorPolicy | None = None

    def __post_init__(self) -> None:
        if self.reporter is None:
            self.reporter = silent_reporter()

    @property
    def suffixes(self) -> Tuple[str, ...]:
        return FRAMEWORK_SUFFIXES[self.framework]

    @property
    def is_vue(self) -> bool:
        return self.framework == "vue"

    def get_import_manager(self) -> Union[ReactImportManager, VueImportManager]:
        if self.is_vue:
            return VueImportManager(self.library, t_import=self.t_import)
        return ReactImportManager(self.library, t_import=self.t_import)

    def get_component_injector(self) -> Union[ReactComponentInjector, VueComponentInjector]:
        if self.is_vue:
            return VueComponentInjector(self.library)
        return ReactComponentInjector(self.library, reporter=self.reporter)

    def get_text_extractor(self) -> Union[ReactTextExtractor, VueTextExtractor]:
        if self.is_vue:
            return VueTextExtractor(self.library, reporter=self.reporter, policy=self.policy)
        return ReactTextExtractor(self.library, reporter=self.reporter, policy=self.policy)

    def get_transformer(self) -> Union[ReactTransformer, VueTransformer]:
        if self.is_vue:
            return VueTransformer(
                self.library,
                import_manager=self.get_import_manager(),
                injector=self.get_component_injector(),
                reporter=self.reporter,
                policy=self.policy,
            )
        return ReactTransformer(
            self.library,
            import_manager=self.get_import_manager(),
            injector=self.get_component_injector(),
            reporter=self.reporter,
            policy=self.policy,
        )

    def get_restore_transformer(self) -> Union[ReactRestoreTransformer, VueRestoreTransformer]:
        if self.is_vue:
            return VueRestoreTransformer(self.library, import_manager=self.get_import_manager(), reporter=self.reporter)
        return ReactRestoreTransformer(self.library, import_manager=self.get_import_manager(), reporter=self.reporter)


def build_adapter(
    framework: str | None,
    library: str | None = None,
    *,
    t_import: str | None = None,
    namespace: str | None = None,
    reporter: Reporter | None = None,
    policy: ErrorPolicy | None = None,
) -> FrameworkAdapter:
    """Factory to create the adapter for ``framework`` and ``library``."""

    normalized = (framework or "react").strip().lower()
    if normalized == "react":
        descriptor: Union[ReactLibrary, VueLibrary] = build_react_library(library, namespace)
    elif normalized == "vue":
        descriptor = build_vue_library(library, namespace)
    else:
        raise UnsupportedFrameworkError(f"Unsupported framework '{framework}'. Choose react or vue.")
    return FrameworkAdapter(
        framework=normalized,
        library=descriptor,
        t_import=t_import or DEFAULT_T_IMPORT,
        reporter=reporter,
        policy=policy,
    )
