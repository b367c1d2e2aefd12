from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from scimpatch.patch.workarounds import PatchWorkaround


@dataclass(frozen=True)
class PatchConfig:
    """
    Per-service PATCH configuration. Every field is a policy flag consulted while
    the request is processed. Use `PatchConfig.create` to get the defaults.

    Attributes:
        supported: Whether PATCH requests are supported at all.
        ignore_unknown_attributes: If set, operations targeting unknown attributes or
            unresolvable paths are skipped instead of failing the request.
        do_not_fail_on_no_target: If set, a remove or filtered operation that yields no
            target is a no-op instead of failing the request with `noTarget` error.
        sailpoint_workaround: Handles REPLACE on single-valued complex attribute as ADD,
            so sub-attributes not sent by the client are kept.
        ms_azure_remove_workaround: Rewrites REMOVE operations that carry values
            into filtered paths.
        ms_azure_value_sub_attribute_workaround: Unwraps values like
            `{"value": "{\\"active\\": false}"}`.
        ms_azure_complex_simple_value_workaround: Wraps non-object values sent for complex
            attributes into `{"value": ...}`.
        ms_azure_dotted_attribute_workaround: Rebuilds dotted keys like `name.givenName`
            in pathless values into nested objects.
        workarounds: Explicit chain of workarounds. If not provided, the default chain
            is used.
    """

    supported: bool = True
    ignore_unknown_attributes: bool = False
    do_not_fail_on_no_target: bool = False
    sailpoint_workaround: bool = False
    ms_azure_remove_workaround: bool = True
    ms_azure_value_sub_attribute_workaround: bool = False
    ms_azure_complex_simple_value_workaround: bool = False
    ms_azure_dotted_attribute_workaround: bool = False
    workarounds: Optional[tuple["PatchWorkaround", ...]] = field(default=None, compare=False)

    @classmethod
    def create(
        cls,
        supported: bool = True,
        ignore_unknown_attributes: bool = False,
        do_not_fail_on_no_target: bool = False,
        sailpoint_workaround: bool = False,
        ms_azure_remove_workaround: bool = True,
        ms_azure_value_sub_attribute_workaround: bool = False,
        ms_azure_complex_simple_value_workaround: bool = False,
        ms_azure_dotted_attribute_workaround: bool = False,
        workarounds: Optional[Sequence["PatchWorkaround"]] = None,
    ) -> "PatchConfig":
        """
        Creates `PatchConfig` with all values defaulted, so PATCH is supported, strict
        validation is enabled, and only the remove workaround is active.
        """
        return cls(
            supported=supported,
            ignore_unknown_attributes=ignore_unknown_attributes,
            do_not_fail_on_no_target=do_not_fail_on_no_target,
            sailpoint_workaround=sailpoint_workaround,
            ms_azure_remove_workaround=ms_azure_remove_workaround,
            ms_azure_value_sub_attribute_workaround=ms_azure_value_sub_attribute_workaround,
            ms_azure_complex_simple_value_workaround=ms_azure_complex_simple_value_workaround,
            ms_azure_dotted_attribute_workaround=ms_azure_dotted_attribute_workaround,
            workarounds=tuple(workarounds) if workarounds is not None else None,
        )
