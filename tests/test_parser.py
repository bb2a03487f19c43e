# =============================================================================
# test_parser.py - Parser Unit Tests
# =============================================================================
# Tests for the recursive-descent parser.
#
# Test coverage includes:
#   - Function blocks and declaration order
#   - Operations: datatype, immediate, mnemonic, active datatype tracking
#   - Literal conversion and range checks per datatype
#   - Branch mnemonic decoding and labels
#   - Calls, shared callees, the halt intrinsic
#   - Error conditions with source locations
# =============================================================================

import pytest

from cpuem_asm.assembler.lexer import Token, TokenType, scan
from cpuem_asm.assembler.parser import (
    BranchCondition,
    FunctionTable,
    Parser,
    decode_branch_mnemonic,
    parse,
    parse_integer_literal,
    parse_source,
)
from cpuem_asm.assembler.symbols import (
    Branch,
    Call,
    Hash,
    IntegerValue,
    Operation,
    RealValue,
)
from cpuem_asm.config import AssemblerConfig
from cpuem_asm.cpu import Datatype
from cpuem_asm.errors import (
    CpuemError,
    DatatypeMismatchError,
    DuplicateFunctionError,
    ImmediateRangeError,
    MalformedBranchError,
    MalformedCallError,
    ParseError,
    SourceLocation,
    UnexpectedEndError,
    UnexpectedTokenError,
)


# =============================================================================
# Helper Functions
# =============================================================================

def parse_body(statements: str, datatype: str = None):
    """Parse statements wrapped in a single function and return its body."""
    config = None
    if datatype:
        config = AssemblerConfig(default_datatype=Datatype.from_name(datatype))
    functions = parse_source(f"main {{ {statements} }}", "<test>", config)
    assert len(functions) == 1
    return functions[0].body


def make_tokens(*pairs) -> list[Token]:
    """Build a token list by hand, one token per column of line 1."""
    return [
        Token(token_type, value, 1, column)
        for column, (token_type, value) in enumerate(pairs, start=1)
    ]


def parse_one(statement: str):
    """Parse a single statement and return its symbol."""
    body = parse_body(statement)
    assert len(body) == 1
    return body[0]


# =============================================================================
# Function Block Tests
# =============================================================================

class TestFunctions:
    """Test parsing of function blocks."""

    def test_empty_source(self):
        assert parse_source("") == []
        assert parse([]) == []

    def test_empty_function(self):
        functions = parse_source("main { }")
        assert len(functions) == 1
        assert functions[0].identifier == "main"
        assert functions[0].body == []
        assert functions[0].defined

    def test_declaration_order(self):
        functions = parse_source("b { } a { } c { }")
        assert [f.identifier for f in functions] == ["b", "a", "c"]

    def test_declared_functions_unresolved(self):
        func = parse_source("main { halt }")[0]
        assert func.hash == Hash.UNRESOLVED
        assert func.is_loaded is False

    def test_function_location(self):
        func = parse_source("\n  main { }", "f.asm")[0]
        assert func.location == SourceLocation("f.asm", 2, 3)

    def test_body_in_source_order(self):
        body = parse_body("int 1 push int 2 push add")
        assert [s.text for s in body] == ["int 1 push", "int 2 push", "add"]


# =============================================================================
# Operation Tests
# =============================================================================

class TestOperations:
    """Test typed and untyped operations."""

    def test_typed_with_immediate(self):
        """add { int 5 push } yields one operation."""
        functions = parse_source("add { int 5 push }")
        assert functions[0].identifier == "add"
        op = functions[0].body[0]
        assert isinstance(op, Operation)
        assert op.datatype is Datatype.INT
        assert op.immediate == IntegerValue(Datatype.INT, 5)
        assert op.mnemonic == "push"
        assert op.text == "int 5 push"

    def test_untyped_operation_uses_default(self):
        op = parse_one("add")
        assert op.datatype is Datatype.INT
        assert op.mnemonic == "add"
        assert op.immediate is None

    def test_datatype_without_mnemonic(self):
        """A missing mnemonic becomes nop."""
        op = parse_one("double")
        assert op.datatype is Datatype.DOUBLE
        assert op.mnemonic == "nop"
        assert op.text == "double nop"

    def test_datatype_and_literal_without_mnemonic(self):
        op = parse_one("byte 7")
        assert op.immediate == IntegerValue(Datatype.BYTE, 7)
        assert op.mnemonic == "nop"

    def test_operation_location(self):
        op = parse_body("\nint 5 push")[0]
        assert (op.location.line, op.location.column) == (2, 1)

    def test_opcode_fields_unset(self):
        op = parse_one("int 5 push")
        assert op.opcode_group is None
        assert op.selection == 0xFF

    def test_datatype_persists_across_statements(self):
        body = parse_body("double 2.5 push add byte 255 push sub")
        assert [s.datatype for s in body] == [
            Datatype.DOUBLE, Datatype.DOUBLE, Datatype.BYTE, Datatype.BYTE,
        ]

    def test_datatype_persists_across_functions(self):
        functions = parse_source("a { long } b { add }")
        assert functions[1].body[0].datatype is Datatype.LONG

    def test_datatype_resets_between_parses(self):
        parse_source("a { double }")
        assert parse_one("add").datatype is Datatype.INT

    def test_configured_default_datatype(self):
        op = parse_body("add", datatype="ulong")[0]
        assert op.datatype is Datatype.ULONG

    def test_reference_datatype_without_immediate(self):
        op = parse_one("function push")
        assert op.datatype is Datatype.FUNCTION
        assert op.immediate is None


# =============================================================================
# Literal Tests
# =============================================================================

class TestLiterals:
    """Test literal conversion under the active datatype."""

    @pytest.mark.parametrize("text", ["42", "0x2A", "0X2a", "042"])
    def test_integer_forms(self, text):
        assert parse_integer_literal(text) == 42

    def test_negative_integer(self):
        assert parse_integer_literal("-0x10") == -16
        op = parse_one("int -5 push")
        assert op.immediate.payload == -5

    def test_decimal_and_hex_immediates(self):
        body = parse_body("int 42 push int 0x2A push")
        assert body[0].immediate.payload == 42
        assert body[1].immediate.payload == 42

    def test_real_literal_under_double(self):
        op = parse_one("double 3.5 push")
        assert op.immediate == RealValue(Datatype.DOUBLE, 3.5)

    def test_real_literal_under_single(self):
        op = parse_one("single 0.1 push")
        assert op.immediate.datatype is Datatype.SINGLE
        assert op.immediate.payload == pytest.approx(0.1, rel=1e-7)

    def test_integer_literal_under_real_datatype(self):
        op = parse_one("double 2 push")
        assert isinstance(op.immediate, RealValue)
        assert op.immediate.payload == 2.0

    def test_exponent_literal(self):
        assert parse_one("double 1e3 push").immediate.payload == 1000.0

    def test_real_literal_under_int(self):
        with pytest.raises(DatatypeMismatchError, match="expected real datatype"):
            parse_body("int 3.5 push")

    def test_integer_literal_under_composite(self):
        with pytest.raises(DatatypeMismatchError):
            parse_body("node 5 push")

    @pytest.mark.parametrize("statement", [
        "byte 256 push",
        "byte -1 push",
        "sbyte 128 push",
        "int 0x80000000 push",
        "ulong 0x10000000000000000 push",
    ])
    def test_out_of_range(self, statement):
        with pytest.raises(ImmediateRangeError, match="out of range"):
            parse_body(statement)

    @pytest.mark.parametrize("statement", [
        "byte 255 push",
        "sbyte -128 push",
        "int -0x80000000 push",
        "ulong 0xFFFFFFFFFFFFFFFF push",
    ])
    def test_range_limits(self, statement):
        assert parse_one(statement).immediate is not None

    def test_real_overflow(self):
        with pytest.raises(ImmediateRangeError):
            parse_body("single 1e39 push")
        with pytest.raises(ImmediateRangeError):
            parse_body("double 1e400 push")


# =============================================================================
# Branch Tests
# =============================================================================

class TestBranchMnemonics:
    """Test decoding of branch condition flags."""

    @pytest.mark.parametrize("mnemonic,flags", [
        ("br", (False, False, False, False)),
        ("brlt", (True, False, False, False)),
        ("brgt", (False, True, False, False)),
        ("brneq", (True, True, False, False)),
        ("breq", (False, False, True, False)),
        ("brz", (False, False, False, True)),
        ("brlteq", (True, False, True, False)),
        ("brgteq", (False, True, True, False)),
        ("brltz", (True, False, False, True)),
        ("brneqz", (True, True, False, True)),
        ("brgteqz", (False, True, True, True)),
    ])
    def test_decode(self, mnemonic, flags):
        assert decode_branch_mnemonic(mnemonic) == BranchCondition(*flags)

    @pytest.mark.parametrize("mnemonic,reason", [
        ("jmp", "start with 'br'"),
        ("brfoo", "unknown condition 'foo'"),
        ("brltneq", "'neq' cannot be combined"),
        ("brneqeq", "'eq' cannot be combined"),
        ("brzlt", "unknown condition 'lt'"),
        ("brltgt", "unknown condition 'gt'"),
        ("breqx", "unknown condition 'x'"),
    ])
    def test_malformed(self, mnemonic, reason):
        with pytest.raises(ValueError, match=reason):
            decode_branch_mnemonic(mnemonic)


class TestBranches:
    """Test parsing of branch statements."""

    def test_branch_lteq(self):
        branch = parse_one("brlteq.done")
        assert isinstance(branch, Branch)
        assert (branch.less, branch.greater, branch.equal, branch.zero) == (
            True, False, True, False,
        )
        assert branch.label == "done"
        assert branch.resolved is False
        assert branch.text == "brlteq.done"

    def test_branch_neq(self):
        branch = parse_one("brneq.loop")
        assert branch.less and branch.greater
        assert not branch.equal

    def test_branch_zero(self):
        branch = parse_one("brz.main")
        assert branch.zero
        assert not (branch.less or branch.greater or branch.equal)

    def test_unconditional(self):
        assert parse_one("br.top").is_unconditional

    def test_unknown_condition(self):
        with pytest.raises(MalformedBranchError) as exc_info:
            parse_body("brfoo.label")
        assert exc_info.value.mnemonic == "brfoo"
        assert "hint:" in str(exc_info.value)

    def test_not_a_branch_word(self):
        """Any word followed by '.' must be a branch mnemonic."""
        with pytest.raises(MalformedBranchError):
            parse_body("push.label")

    def test_missing_label(self):
        with pytest.raises(MalformedBranchError, match="expected label"):
            parse_body("brz.")

    def test_literal_label(self):
        with pytest.raises(MalformedBranchError):
            parse_body("brz. 5")

    def test_label_at_end_of_input(self):
        with pytest.raises(UnexpectedEndError):
            parse_source("main { brz.")


# =============================================================================
# Call Tests
# =============================================================================

class TestCalls:
    """Test calls and the function table."""

    def test_call(self):
        call = parse_one("foo(3)")
        assert isinstance(call, Call)
        assert call.callee.identifier == "foo"
        assert call.callee.hash == Hash.UNRESOLVED
        assert call.argument_count == 3
        assert call.text == "foo(3)"

    def test_hex_argument_count(self):
        assert parse_one("foo(0x10)").argument_count == 16

    def test_halt(self):
        call = parse_one("halt")
        assert isinstance(call, Call)
        assert call.callee.hash == Hash.INTRINSIC
        assert call.callee.is_intrinsic
        assert call.argument_count == 0
        assert call.text == "halt"

    def test_halt_shared(self):
        body = parse_body("halt halt")
        assert body[0].callee is body[1].callee

    def test_call_sites_share_callee(self):
        body = parse_body("foo(1) bar(0) foo(2)")
        assert body[0].callee is body[2].callee
        assert body[0].callee is not body[1].callee

    def test_call_shares_declared_function(self):
        """Forward and backward calls resolve to the declared Function."""
        functions = parse_source("a { b(0) } b { a(1) }")
        a, b = functions
        assert a.body[0].callee is b
        assert b.body[0].callee is a

    def test_external_functions(self):
        parser = Parser(scan("main { helper(1) main(0) }"))
        functions = parser.parse()
        assert [f.identifier for f in functions] == ["main"]
        external = parser.external_functions
        assert [f.identifier for f in external] == ["helper"]
        assert external[0].defined is False
        assert external[0].location is None

    @pytest.mark.parametrize("statement,reason", [
        ("foo(x)", "expected integer argument count"),
        ("foo(1.5)", "expected integer argument count"),
        ("foo(-1)", "cannot be negative"),
        ("foo(1 }", "expected '\\)'"),
        ("foo()", "expected integer argument count"),
    ])
    def test_malformed_call(self, statement, reason):
        with pytest.raises(MalformedCallError, match=reason):
            parse_body(statement)

    def test_call_at_end_of_input(self):
        with pytest.raises(UnexpectedEndError):
            parse_source("main { foo(")


class TestFunctionTable:
    """Test the per-parse function table directly."""

    def test_reference_is_shared(self):
        table = FunctionTable()
        assert table.reference("f") is table.reference("f")
        assert "f" in table
        assert len(table) == 1

    def test_declare_after_reference(self):
        table = FunctionTable()
        called = table.reference("f")
        declared = table.declare("f", SourceLocation("<test>", 3, 1))
        assert declared is called
        assert table.declared == [called]
        assert table.external == []

    def test_duplicate_declaration(self):
        table = FunctionTable()
        table.declare("f", SourceLocation("<test>", 1, 1))
        with pytest.raises(DuplicateFunctionError) as exc_info:
            table.declare("f", SourceLocation("<test>", 4, 1))
        assert exc_info.value.original_location.line == 1

    def test_intrinsics_separate(self):
        """A function named halt does not replace the built-in."""
        table = FunctionTable()
        assert table.intrinsic("halt") is not table.reference("halt")
        assert table.intrinsic("halt") is table.intrinsic("halt")


# =============================================================================
# Error Condition Tests
# =============================================================================

class TestErrors:
    """Test parse error detection and reporting."""

    def test_duplicate_function(self):
        with pytest.raises(DuplicateFunctionError, match="duplicate function 'main'") as exc_info:
            parse_source("main { }\nmain { }", "dup.asm")
        assert "first declared at dup.asm:1:1" in str(exc_info.value)

    def test_missing_open_brace(self):
        with pytest.raises(UnexpectedTokenError, match="'\\{'"):
            parse_source("main halt }")

    def test_missing_close_brace(self):
        with pytest.raises(UnexpectedEndError, match="'}'"):
            parse_source("main { halt")

    def test_identifier_only(self):
        with pytest.raises(UnexpectedEndError):
            parse_source("main")

    @pytest.mark.parametrize("source", ["{ }", "int { }", "5 { }", "halt { }"])
    def test_bad_function_identifier(self, source):
        with pytest.raises(UnexpectedTokenError, match="expected function identifier"):
            parse_source(source)

    def test_literal_starts_statement(self):
        with pytest.raises(UnexpectedTokenError, match="cannot start a statement"):
            parse_body("5 push")

    @pytest.mark.parametrize("statement", ["push :", "push [", "push ]", "push )"])
    def test_invalid_punctuation_after_word(self, statement):
        with pytest.raises(UnexpectedTokenError):
            parse_body(statement)

    @pytest.mark.parametrize("statement", ["(", ":", "{"])
    def test_punctuation_starts_statement(self, statement):
        with pytest.raises(UnexpectedTokenError):
            parse_body(statement)

    def test_word_at_end_of_input(self):
        with pytest.raises(UnexpectedEndError):
            parse_source("main { push")

    def test_error_has_location(self):
        with pytest.raises(ParseError) as exc_info:
            parse_source("main {\n    int 3.5 push\n}", "prog.asm")
        assert str(exc_info.value).startswith("prog.asm:2:9: error:")

    def test_no_partial_result(self):
        """An error in a later function aborts the whole parse."""
        with pytest.raises(ParseError):
            parse_source("good { halt } bad { brq.x }")


# =============================================================================
# Hand-Built Token Tests
# =============================================================================

class TestHandBuiltTokens:
    """Tokens that did not come from the lexer still fail with parse errors."""

    def test_unconvertible_real_literal(self):
        tokens = make_tokens(
            (TokenType.WORD, "main"),
            (TokenType.PUNCTUATION, "{"),
            (TokenType.DATATYPE, "double"),
            (TokenType.REAL_LITERAL, "1.2.3"),
            (TokenType.PUNCTUATION, "}"),
        )
        with pytest.raises(ImmediateRangeError, match="malformed real literal '1.2.3'"):
            parse(tokens)

    def test_unconvertible_integer_literal(self):
        tokens = make_tokens(
            (TokenType.WORD, "main"),
            (TokenType.PUNCTUATION, "{"),
            (TokenType.DATATYPE, "int"),
            (TokenType.INTEGER_LITERAL, "12ab"),
            (TokenType.PUNCTUATION, "}"),
        )
        with pytest.raises(ImmediateRangeError, match="malformed integer literal"):
            parse(tokens)

    def test_unconvertible_argument_count(self):
        tokens = make_tokens(
            (TokenType.WORD, "main"),
            (TokenType.PUNCTUATION, "{"),
            (TokenType.WORD, "foo"),
            (TokenType.PUNCTUATION, "("),
            (TokenType.INTEGER_LITERAL, "0xZZ"),
            (TokenType.PUNCTUATION, ")"),
            (TokenType.PUNCTUATION, "}"),
        )
        with pytest.raises(MalformedCallError, match="malformed argument count '0xZZ'"):
            parse(tokens)

    def test_errors_are_cpuem_errors(self):
        tokens = make_tokens(
            (TokenType.WORD, "main"),
            (TokenType.PUNCTUATION, "{"),
            (TokenType.DATATYPE, "single"),
            (TokenType.REAL_LITERAL, "--1"),
            (TokenType.PUNCTUATION, "}"),
        )
        with pytest.raises(CpuemError):
            parse(tokens)


# =============================================================================
# Source Line Tests
# =============================================================================

class TestSourceLines:
    """Parse errors show the offending line and a caret when source is known."""

    def test_caret_under_error(self):
        with pytest.raises(DatatypeMismatchError) as exc_info:
            parse_source("main {\n    int 3.5 push\n}", "prog.asm")
        error = exc_info.value
        assert error.source_line == "    int 3.5 push"
        lines = str(error).splitlines()
        assert lines[0].startswith("prog.asm:2:9: error:")
        assert lines[1] == "        int 3.5 push"
        assert lines[2] == " " * 12 + "^"

    def test_hint_kept_after_source_line(self):
        with pytest.raises(MalformedBranchError) as exc_info:
            parse_source("main { brfoo.x }")
        lines = str(exc_info.value).splitlines()
        assert lines[1] == "    main { brfoo.x }"
        assert lines[-1].startswith("hint:")

    def test_carriage_return_lines(self):
        with pytest.raises(DuplicateFunctionError) as exc_info:
            parse_source("a { }\rb { }\r\na { }")
        assert exc_info.value.location.line == 3
        assert exc_info.value.source_line == "a { }"

    def test_end_of_input(self):
        with pytest.raises(UnexpectedEndError) as exc_info:
            parse_source("main {\n  halt")
        assert exc_info.value.source_line == "  halt"

    def test_tokens_only(self):
        """Without source text the message has no source line."""
        with pytest.raises(ParseError) as exc_info:
            parse(scan("main { 5 }"))
        assert exc_info.value.source_line is None
        assert len(str(exc_info.value).splitlines()) == 2
