import contextlib
import io
import os
import subprocess
import tempfile
from pathlib import Path
import unittest
from unittest import mock

from hydrogen import main as main_mod
from hydrogen.codegen import IdentifierInUse, IdentifierNotFound
from hydrogen.lexer import LexError
from hydrogen.parser import ExpectedToken


class CompileSourceTests(unittest.TestCase):
    def test_returns_assembly(self):
        assembly = main_mod.compile_source("let a = 1; exit(a);")
        self.assertTrue(assembly.startswith("global _start\n_start:\n"))

    def test_error_keeps_stage_error_as_cause(self):
        with self.assertRaises(main_mod.CompileError) as ctx:
            main_mod.compile_source("exit(y);")
        self.assertIsInstance(ctx.exception.__cause__, IdentifierNotFound)
        self.assertEqual(str(ctx.exception), "CompileError: Identifier 'y' is not defined")

    def test_parse_error_is_wrapped(self):
        with self.assertRaises(main_mod.CompileError) as ctx:
            main_mod.compile_source("exit(1")
        self.assertIsInstance(ctx.exception.__cause__, ExpectedToken)

    def test_quiet_by_default(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            main_mod.compile_source("exit(0);")
        self.assertEqual(out.getvalue(), "")

    def test_lex_error_is_wrapped(self):
        with mock.patch.object(main_mod, "tokenize", side_effect=LexError("bad")):
            with self.assertRaises(main_mod.CompileError) as ctx:
                main_mod.compile_source("exit(0);")
        self.assertIsInstance(ctx.exception.__cause__, LexError)


class CompileFileTests(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.dir = Path(tmpdir.name)

    def write_source(self, text, name="program.hy"):
        path = self.dir / name
        path.write_text(text)
        return path

    def test_explicit_output(self):
        source = self.write_source("exit(42);")
        out_path = self.dir / "out.asm"
        written = main_mod.compile_file(source, out_path)
        self.assertEqual(written, out_path)
        self.assertIn("mov rax, 42", out_path.read_text())

    def test_default_output_keeps_stem_in_current_directory(self):
        source = self.write_source("exit(0);", name="answer.hy")
        cwd = os.getcwd()
        os.chdir(self.dir)
        self.addCleanup(os.chdir, cwd)
        written = main_mod.compile_file(str(source))
        self.assertEqual(written, Path("answer.asm"))
        self.assertTrue((self.dir / "answer.asm").exists())

    def test_no_output_on_failure(self):
        source = self.write_source("let x = 1; let x = 2; exit(x);")
        out_path = self.dir / "program.asm"
        with self.assertRaises(main_mod.CompileError) as ctx:
            main_mod.compile_file(source, out_path)
        self.assertIsInstance(ctx.exception.__cause__, IdentifierInUse)
        self.assertFalse(out_path.exists())

    def test_missing_source(self):
        with self.assertRaises(main_mod.CompileError) as ctx:
            main_mod.compile_file(self.dir / "missing.hy", self.dir / "missing.asm")
        self.assertIsInstance(ctx.exception.__cause__, OSError)


class CliTests(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.dir = Path(tmpdir.name)

    def run_main(self, argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            main_mod.main(argv)
        return out.getvalue()

    def test_assembly_only(self):
        source = self.dir / "program.hy"
        source.write_text("let a = 1;\nlet b = 2;\nexit(a + b);\n")
        out_path = self.dir / "program.asm"
        output = self.run_main(["-S", str(source), "-o", str(out_path)])
        self.assertIn("Compilation successful", output)
        self.assertIn("add rax, rbx", out_path.read_text())
        self.assertIn("Step 1: Tokenizing...", output)
        self.assertIn("Generated 17 tokens", output)
        self.assertIn("Step 2: Parsing...", output)
        self.assertIn("Step 3: Generating assembly...", output)

    def test_failure_exits_with_one(self):
        source = self.dir / "program.hy"
        source.write_text("exit(y);")
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(["-S", "-c", str(source), "-o", str(self.dir / "program.asm")])
        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse((self.dir / "program.asm").exists())

    def test_missing_input_file(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main([str(self.dir / "nope.hy")])
        self.assertEqual(ctx.exception.code, 1)

    def test_dump_tokens(self):
        source = self.dir / "program.hy"
        source.write_text("exit(3);")
        with self.assertRaises(SystemExit) as ctx:
            output = io.StringIO()
            with contextlib.redirect_stdout(output):
                main_mod.main(["--dump-tokens", str(source)])
        self.assertEqual(ctx.exception.code, 0)
        self.assertIn("Token(INTEGER, '3', line=1)", output.getvalue())

    def test_missing_toolchain_fails(self):
        source = self.dir / "program.hy"
        source.write_text("exit(0);")
        with mock.patch.object(main_mod.shutil, "which", return_value=None):
            out = io.StringIO()
            with contextlib.redirect_stdout(out):
                success = main_mod.compile_hydrogen(str(source), str(self.dir / "program"))
        self.assertFalse(success)
        self.assertIn("nasm and ld are required", out.getvalue())

    def test_toolchain_success_removes_object_file(self):
        asm_file = self.dir / "program.asm"
        asm_file.write_text("global _start\n_start:\n")
        object_file = self.dir / "program.o"
        object_file.write_text("")
        done = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        with mock.patch.object(main_mod.shutil, "which", side_effect=lambda tool: f"/usr/bin/{tool}"), \
                mock.patch.object(main_mod.subprocess, "run", return_value=done) as run:
            with contextlib.redirect_stdout(io.StringIO()):
                success = main_mod.run_toolchain(asm_file, self.dir / "program")
        self.assertTrue(success)
        self.assertFalse(object_file.exists())
        self.assertEqual(run.call_count, 2)
        nasm_args = run.call_args_list[0][0][0]
        self.assertEqual(nasm_args[:3], ["/usr/bin/nasm", "-felf64", str(asm_file)])
        ld_args = run.call_args_list[1][0][0]
        self.assertEqual(ld_args, ["/usr/bin/ld", str(object_file), "-o", str(self.dir / "program")])

    def test_toolchain_failure_returns_false(self):
        asm_file = self.dir / "program.asm"
        asm_file.write_text("global _start\n_start:\n")
        failed = subprocess.CompletedProcess([], 1, stdout="", stderr="nasm: error: bad operand")
        out = io.StringIO()
        with mock.patch.object(main_mod.shutil, "which", side_effect=lambda tool: f"/usr/bin/{tool}"), \
                mock.patch.object(main_mod.subprocess, "run", return_value=failed) as run:
            with contextlib.redirect_stdout(out):
                success = main_mod.run_toolchain(asm_file, self.dir / "program")
        self.assertFalse(success)
        self.assertEqual(run.call_count, 1)
        self.assertIn("bad operand", out.getvalue())

    def test_keystone_emits_bin_when_available(self):
        try:
            import keystone  # type: ignore  # noqa: F401
        except ImportError:
            self.skipTest("keystone not installed")

        source = self.dir / "program.hy"
        source.write_text("exit(42);")
        out_path = self.dir / "program.asm"
        with contextlib.redirect_stdout(io.StringIO()):
            success = main_mod.compile_hydrogen(str(source), str(out_path), generate_assembly_only=True,
                                                use_keystone=True)
        self.assertTrue(success)
        self.assertTrue((self.dir / "program.bin").exists())


if __name__ == "__main__":
    unittest.main()
