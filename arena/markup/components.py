"""Pseudo-component rewrite catalog and the generic rewriter that consumes it.

Adding a component means adding a :class:`ComponentRule` row to
:data:`COMPONENT_RULES`; :func:`rewrite_components` never changes.
"""

from __future__ import annotations

import re
from typing import Iterable

from arena.markup.attributes import escape_attribute, parse_attributes, split_classes
from arena.markup.models import AttributePolicy, ComponentRule

_strip = AttributePolicy.strip
_keep = AttributePolicy.keep_only

COMPONENT_RULES: tuple[ComponentRule, ...] = (
    ComponentRule("Button", "button", "arena-btn", _strip("variant", "size", "asChild")),
    ComponentRule("Badge", "span", "arena-badge"),
    ComponentRule("Card", "div", "arena-card"),
    ComponentRule("CardHeader", "div", "arena-card__header"),
    ComponentRule("CardContent", "div", "arena-card__content"),
    ComponentRule("CardTitle", "h3", "arena-card__title"),
    ComponentRule("CardDescription", "p", "arena-card__description"),
    ComponentRule("CardFooter", "div", "arena-card__footer"),
    ComponentRule("Tabs", "div", "arena-tabs"),
    ComponentRule("TabsList", "div", "arena-tabs__list"),
    ComponentRule("TabsTrigger", "button", "arena-tabs__trigger", _strip("value")),
    ComponentRule("TabsContent", "div", "arena-tabs__content", _strip("value")),
    ComponentRule("Link", "a", "arena-link", _strip("prefetch", "legacyBehavior")),
    ComponentRule("Input", "input", "arena-input", _strip("type")),
    ComponentRule("Label", "label", "arena-label"),
    ComponentRule("Textarea", "textarea", "arena-textarea"),
    ComponentRule("Avatar", "div", "arena-avatar"),
    ComponentRule("AvatarImage", "div", "arena-avatar__image", _strip("src", "alt")),
    ComponentRule("AvatarFallback", "span", "arena-avatar__fallback"),
    ComponentRule(
        "Image", "div", "arena-image", _keep("src", "alt", "width", "height"), self_closing=True
    ),
)

_CLASS_KEYS = ("className", "class")


def build_tag_attributes(raw_attrs: str, rule: ComponentRule) -> str:
    """Return the attribute string (leading space included) for one occurrence.

    The rule's base class always comes first, followed by any surviving
    ``className``/``class`` tokens; remaining attributes are re-emitted as
    escaped ``name="value"`` pairs in scan order.
    """
    attrs = rule.policy.apply(parse_attributes(raw_attrs))

    classes = [rule.base_class]
    for key in _CLASS_KEYS:
        if key in attrs:
            classes.extend(split_classes(attrs.pop(key)))

    pairs = " ".join(f'{key}="{escape_attribute(value)}"' for key, value in attrs.items())
    class_list = " ".join(c for c in classes if c)
    return f' class="{class_list}"' + (f" {pairs}" if pairs else "")


def _opening_tag_re(name: str) -> re.Pattern[str]:
    # Lookahead keeps <Card> from swallowing <CardHeader>.
    return re.compile(rf"<{re.escape(name)}(?=[\s/>])([^>]*)>")


def _self_closing_tag_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"<{re.escape(name)}(?=[\s/])([^>]*)/>")


def rewrite_component(source: str, rule: ComponentRule) -> str:
    """Replace every occurrence of ``rule.source_name`` in *source*."""
    tag = rule.target_tag

    if rule.self_closing:
        return _self_closing_tag_re(rule.source_name).sub(
            lambda m: f"<{tag}{build_tag_attributes(m.group(1), rule)}></{tag}>",
            source,
        )

    output = _opening_tag_re(rule.source_name).sub(
        lambda m: f"<{tag}{build_tag_attributes(m.group(1), rule)}>",
        source,
    )
    return output.replace(f"</{rule.source_name}>", f"</{tag}>")


def rewrite_components(
    source: str, rules: Iterable[ComponentRule] = COMPONENT_RULES
) -> str:
    """Apply every rule in order to *source*."""
    output = source
    for rule in rules:
        output = rewrite_component(output, rule)
    return output
