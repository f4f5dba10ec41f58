"""Tests for fitting optional prompt blocks into a token budget."""

from prwarden_core.budget import Block, assemble, field_block, fit_blocks, pack_patches
from prwarden_core.inputs import Inputs
from prwarden_core.patches import FilePatch


def _block(name, cost):
    return Block(name, cost, lambda inputs: None)


class TestFitBlocks:
    def test_takes_blocks_in_order(self):
        result = fit_blocks(10, [_block("a", 5), _block("b", 5)], 20)
        assert result.included == ["a", "b"]
        assert result.tokens == 20

    def test_skips_block_over_budget_but_tries_the_rest(self):
        result = fit_blocks(10, [_block("big", 50), _block("small", 5)], 20)
        assert result.included == ["small"]
        assert result.omitted == ["big"]
        assert result.tokens == 15

    def test_boundary_is_inclusive(self):
        assert fit_blocks(10, [_block("exact", 10)], 20).included == ["exact"]
        assert fit_blocks(10, [_block("over", 11)], 20).omitted == ["over"]


class TestAssemble:
    TEMPLATE = "title $title\ndiff $file_diff\nsummary $short_summary"

    def test_includes_fitting_blocks(self):
        inputs = Inputs(title="t")
        blocks = [field_block("file_diff", "file_diff", "a b c"), field_block("short_summary", "short_summary", "s")]
        assembly = assemble(self.TEMPLATE, inputs, blocks, 100)
        assert assembly.included == ["file_diff", "short_summary"]
        assert "diff a b c" in assembly.prompt
        assert "summary s" in assembly.prompt

    def test_omits_large_block_and_keeps_small_one(self):
        inputs = Inputs(title="t")
        big = " ".join(["w"] * 50)
        blocks = [field_block("file_diff", "file_diff", big), field_block("short_summary", "short_summary", "s")]
        assembly = assemble(self.TEMPLATE, inputs, blocks, 20)
        assert assembly.omitted == ["file_diff"]
        assert assembly.included == ["short_summary"]
        assert "file diff cannot be provided" in assembly.prompt
        assert assembly.tokens <= 20

    def test_base_over_budget(self):
        inputs = Inputs(title=" ".join(["w"] * 50))
        assert assemble(self.TEMPLATE, inputs, [], 10) is None

    def test_inputs_not_modified(self):
        inputs = Inputs()
        assemble(self.TEMPLATE, inputs, [field_block("file_diff", "file_diff", "x")], 100)
        assert inputs.file_diff == "file diff cannot be provided"

    def test_custom_counter(self):
        block = field_block("file_diff", "file_diff", "abcdef", count_tokens=len)
        assert block.cost == 6


class TestPackPatches:
    def _patches(self):
        return [FilePatch(1, 5, "one two"), FilePatch(10, 12, "three four"), FilePatch(20, 22, "five six")]

    def test_packs_all_with_chains(self):
        packed = pack_patches(self._patches(), 0, 100, lambda s, e: f"chain {s}" if s == 10 else "")
        assert packed.packed == 3
        assert packed.text.count("---end_change_section---") == 3
        assert packed.text.count("---comment_chains---") == 1
        assert "chain 10" in packed.text
        assert packed.tokens == 8

    def test_stops_at_first_patch_over_budget(self):
        patches = [FilePatch(1, 5, "a b"), FilePatch(10, 12, " ".join(["x"] * 10)), FilePatch(20, 22, "c")]
        packed = pack_patches(patches, 0, 5, lambda s, e: "")
        assert packed.packed == 1
        assert "\nc\n" not in packed.text

    def test_chain_dropped_when_it_does_not_fit(self):
        packed = pack_patches([FilePatch(1, 5, "a b")], 0, 3, lambda s, e: "long chain text here")
        assert packed.packed == 1
        assert "---comment_chains---" not in packed.text
        assert packed.tokens == 2

    def test_section_layout(self):
        packed = pack_patches([FilePatch(1, 2, "hunk")], 0, 100, lambda s, e: "c")
        assert packed.text == "\nhunk\n\n---comment_chains---\n```\nc\n```\n\n---end_change_section---\n"
