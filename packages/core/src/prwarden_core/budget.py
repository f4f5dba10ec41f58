"""Greedy fitting of optional prompt blocks into a token budget.

The required part of a prompt (template plus mandatory inputs) is measured
first. Optional blocks (full file diff, short summary, a comment chain) are
then tried in priority order and each one is either included whole or left
out; nothing is truncated. A block that does not fit does not stop smaller
blocks after it from being tried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from prwarden_core.inputs import Inputs
from prwarden_core.tokenizer import get_token_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Block:
    name: str
    cost: int
    apply: Callable[[Inputs], None]


@dataclass
class FitResult:
    tokens: int
    included: list[str] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)


@dataclass
class PromptAssembly:
    prompt: str
    tokens: int
    included: list[str] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)


def field_block(name: str, attr: str, value: str, count_tokens: Callable[[str], int] = get_token_count) -> Block:
    """A block that sets ``Inputs.<attr>`` to ``value`` and costs ``value``'s token count."""

    def _apply(inputs: Inputs) -> None:
        setattr(inputs, attr, value)

    return Block(name, count_tokens(value), _apply)


def fit_blocks(base_tokens: int, blocks: Sequence[Block], request_tokens: int) -> FitResult:
    """Pick the blocks that fit, in order, on top of ``base_tokens``.

    A block is taken when ``current + cost <= request_tokens``.
    """
    result = FitResult(tokens=base_tokens)
    for block in blocks:
        if result.tokens + block.cost <= request_tokens:
            result.tokens += block.cost
            result.included.append(block.name)
        else:
            result.omitted.append(block.name)
    return result


def assemble(
    template: str,
    inputs: Inputs,
    blocks: Sequence[Block],
    request_tokens: int,
    count_tokens: Callable[[str], int] = get_token_count,
) -> PromptAssembly | None:
    """Render ``template`` with as many optional ``blocks`` as the budget allows.

    Returns None when the required part alone is over ``request_tokens``.
    ``inputs`` is not modified.
    """
    base_tokens = count_tokens(inputs.render(template))
    if base_tokens > request_tokens:
        logger.info("Prompt needs %d tokens, over the %d token budget", base_tokens, request_tokens)
        return None

    fit = fit_blocks(base_tokens, blocks, request_tokens)
    rendered = inputs.clone()
    for block in blocks:
        if block.name in fit.included:
            block.apply(rendered)
    if fit.omitted:
        logger.debug("Omitted prompt blocks: %s", ", ".join(fit.omitted))
    return PromptAssembly(rendered.render(template), fit.tokens, fit.included, fit.omitted)


@dataclass
class PackedPatches:
    text: str
    tokens: int
    packed: int


def pack_patches(
    patches: Sequence,
    base_tokens: int,
    request_tokens: int,
    chain_for: Callable[[int, int], str],
    count_tokens: Callable[[str], int] = get_token_count,
) -> PackedPatches:
    """Pack hunks into the ``$patches`` section in order until one does not fit.

    Hunks are positional, so packing stops at the first hunk over budget
    instead of skipping it. Each packed hunk carries its comment chain
    (``chain_for(start_line, end_line)``) only when the chain fits as well.
    """
    tokens = base_tokens
    parts: list[str] = []
    packed = 0
    for patch in patches:
        patch_tokens = count_tokens(patch.text)
        if tokens + patch_tokens > request_tokens:
            logger.info("Only packing %d/%d patches, tokens: %d/%d", packed, len(patches), tokens, request_tokens)
            break
        tokens += patch_tokens
        packed += 1

        chain = chain_for(patch.start_line, patch.end_line)
        if chain:
            chain_tokens = count_tokens(chain)
            if tokens + chain_tokens > request_tokens:
                chain = ""
            else:
                tokens += chain_tokens

        parts.append(f"\n{patch.text}\n")
        if chain:
            parts.append(f"\n---comment_chains---\n```\n{chain}\n```\n")
        parts.append("\n---end_change_section---\n")
    return PackedPatches("".join(parts), tokens, packed)
