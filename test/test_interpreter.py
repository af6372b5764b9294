"""
Interpreter tests for SLIM
Evaluation rules, scoping, closures and runtime errors
"""

import pytest
from ast_nodes import ExprStmt, NumberLiteral, Unary
from interpreter import create_interpreter
from utilities import SlimRuntimeError


class TestArithmetic:
  """Precedence and associativity as observed at runtime"""

  @pytest.mark.parametrize("expression, expected", [
      ("2 + 3 * 4", 14),
      ("(2 + 3) * 4", 20),
      ("10 - 3 - 2", 5),
      ("100 / 10 / 5", 2),
      ("-2 * 3", -6),
      ("- (1 - 4)", 3),
      ("1.5 + 1", 2.5),
  ])
  def test_expression_value(self, evaluate, expression, expected):
    result = evaluate(expression)
    assert result['type'] == "Num"
    assert result['value'] == expected

  def test_division_by_zero(self, evaluate):
    with pytest.raises(SlimRuntimeError, match="Division by zero"):
      evaluate("1 / 0")

  def test_arithmetic_requires_numbers(self, evaluate):
    with pytest.raises(SlimRuntimeError, match="Operator '-' cannot be applied to string and number"):
      evaluate('"a" - 1')

  def test_negating_a_string_fails(self, evaluate):
    with pytest.raises(SlimRuntimeError, match="Operator '-'"):
      evaluate('-"a"')

  def test_error_carries_source_position(self, run):
    with pytest.raises(SlimRuntimeError) as info:
      run("let a = 1;\nlet b = a * nil;")
    assert info.value.span.start_line == 2

  def test_float_overflow(self, run):
    with pytest.raises(SlimRuntimeError, match="Numeric overflow"):
      run("let x = 1.5; let i = 0; while (i < 20) { x *= x; i += 1; } floor(x);")

  @pytest.mark.parametrize("expression", ["big / 3", "big + 0.5", "big * 0.5", "big - 0.5"])
  def test_integer_too_large_for_float(self, run, expression):
    with pytest.raises(SlimRuntimeError, match="Numeric overflow"):
      run(f"let big = 1; let i = 0; while (i < 400) {{ big *= 10; i += 1; }} {expression};")

  def test_large_integers_stay_exact(self, evaluate):
    assert evaluate("1000000000 * 1000000000 * 1000000000")['value'] == 10 ** 27


class TestStringsAndEquality:
  """Concatenation and comparison policy"""

  def test_string_concatenation(self, evaluate):
    assert evaluate('"foo" + "bar"')['value'] == "foobar"

  def test_concatenation_with_number_on_either_side(self, evaluate):
    assert evaluate('"n=" + 4')['value'] == "n=4"
    assert evaluate('2.5 + "x"')['value'] == "2.5x"

  def test_concatenation_renders_integral_floats_plainly(self, evaluate):
    assert evaluate('"" + 10 / 2')['value'] == "5"

  def test_plus_rejects_bool_and_number(self, evaluate):
    with pytest.raises(SlimRuntimeError):
      evaluate("true + 1")

  @pytest.mark.parametrize("expression, expected", [
      ("1 == 1", True),
      ("1 == 1.0", True),
      ('"a" == "a"', True),
      ('1 == "1"', False),
      ("nil == false", False),
      ("nil == nil", True),
      ("1 != 2", True),
      ('"a" != 1', True),
      ("print == print", True),
  ])
  def test_equality(self, evaluate, expression, expected):
    result = evaluate(expression)
    assert result['type'] == "Bool"
    assert result['value'] is expected

  def test_comparison_of_strings(self, evaluate):
    assert evaluate('"apple" < "banana"')['value'] is True

  def test_comparison_of_mixed_types_fails(self, evaluate):
    with pytest.raises(SlimRuntimeError, match="Operator '<'"):
      evaluate('1 < "2"')


class TestTruthiness:
  """false, nil, 0 and empty string are falsey"""

  @pytest.mark.parametrize("condition, expected", [
      ("false", "no"), ("nil", "no"), ("0", "no"), ('""', "no"), ("0.0", "no"),
      ("true", "yes"), ("1", "yes"), ("-1", "yes"), ('"0"', "yes"), ("print", "yes"),
  ])
  def test_if_condition(self, run, capsys, condition, expected):
    run(f'if ({condition}) print("yes"); else print("no");')
    assert capsys.readouterr().out == f"{expected}\n"

  def test_not(self, evaluate):
    assert evaluate("not 0")['value'] is True
    assert evaluate('!"text"')['value'] is False

  def test_logic_results_are_bool(self, evaluate):
    assert evaluate("1 and 2") == {'type': "Bool", 'value': True}
    assert evaluate("0 or nil") == {'type': "Bool", 'value': False}


class TestShortCircuit:
  """The right operand is skipped when the left decides the result"""

  PROGRAM = """
  let calls = 0;
  func sideEffect() { calls += 1; true; }
  """

  def test_false_and_skips_call(self, run):
    interpreter = run(self.PROGRAM + "false and sideEffect();")
    assert interpreter.lookup("calls")['value'] == 0

  def test_true_or_skips_call(self, run):
    interpreter = run(self.PROGRAM + "true or sideEffect();")
    assert interpreter.lookup("calls")['value'] == 0

  def test_right_operand_runs_when_needed(self, run):
    interpreter = run(self.PROGRAM + "true and sideEffect(); false or sideEffect();")
    assert interpreter.lookup("calls")['value'] == 2


class TestScoping:
  """Blocks open a scope; lookups walk outward"""

  def test_block_let_does_not_leak(self, run):
    with pytest.raises(SlimRuntimeError, match="Undefined variable 'x'"):
      run("{ let x = 1; } print(x);")

  def test_shadowing_leaves_outer_value(self, run, capsys):
    run("let x = 1; { let x = 2; print(x); } print(x);")
    assert capsys.readouterr().out == "2\n1\n"

  def test_assignment_writes_to_defining_frame(self, run):
    interpreter = run("let total = 0; { { total += 5; } total = total * 2; }")
    assert interpreter.lookup("total")['value'] == 10

  def test_let_without_initializer_is_nil(self, run):
    interpreter = run("let x;")
    assert interpreter.lookup("x")['type'] == "Nil"

  def test_redeclaring_in_same_scope_rebinds(self, run):
    interpreter = run("let x = 1; let x = 2;")
    assert interpreter.lookup("x")['value'] == 2

  def test_block_scope_discarded_after_error(self, parser):
    interpreter = create_interpreter()
    with pytest.raises(SlimRuntimeError):
      interpreter.interpret(parser.parse_string("{ let inner = 1; 1 / 0; }"))
    with pytest.raises(SlimRuntimeError, match="Undefined variable 'inner'"):
      interpreter.interpret(parser.parse_string("inner;"))


class TestAssignment:
  """Plain and compound assignment"""

  def test_compound_add(self, run):
    interpreter = run("let x = 10; x += 5;")
    assert interpreter.lookup("x")['value'] == 15

  @pytest.mark.parametrize("statement, expected", [
      ("x = 3;", 3), ("x -= 4;", 6), ("x *= 3;", 30), ("x /= 4;", 2.5),
  ])
  def test_assignment_operators(self, run, statement, expected):
    interpreter = run(f"let x = 10; {statement}")
    assert interpreter.lookup("x")['value'] == expected

  def test_compound_add_concatenates_strings(self, run):
    interpreter = run('let s = "ab"; s += "c";')
    assert interpreter.lookup("s")['value'] == "abc"

  def test_assignment_may_change_type(self, run):
    interpreter = run('let x = 1; x = "one";')
    assert interpreter.lookup("x")['value'] == "one"

  def test_compound_assignment_to_undeclared_name(self, run):
    with pytest.raises(SlimRuntimeError, match="Assignment to undeclared variable 'y'"):
      run("y += 1;")

  def test_plain_assignment_to_undeclared_name(self, run):
    with pytest.raises(SlimRuntimeError, match="Assignment to undeclared variable 'y'"):
      run("y = 1;")


class TestWhile:
  """Loops re-check the condition before each iteration"""

  def test_counting_loop(self, run, capsys):
    run("let i = 0; while (i < 3) { print(i); i += 1; }")
    assert capsys.readouterr().out == "0\n1\n2\n"

  def test_zero_iterations(self, run, capsys):
    run('while (false) print("never");')
    assert capsys.readouterr().out == ""


class TestFunctions:
  """User functions, closures and the completion-value result"""

  def test_recursive_factorial(self, run):
    interpreter = run("""
    func fact(n) {
      if (n <= 1) 1;
      else n * fact(n - 1);
    }
    let result = fact(6);
    """)
    assert interpreter.lookup("result")['value'] == 720

  def test_recursion_through_side_effects(self, run, capsys):
    run("""
    let product = 1;
    func fact(n) {
      if (n > 1) { product *= n; fact(n - 1); }
    }
    fact(5);
    print(product);
    """)
    assert capsys.readouterr().out == "120\n"

  def test_result_is_last_statement_value(self, run):
    interpreter = run("func f() { 1; 2; 3; } let r = f();")
    assert interpreter.lookup("r")['value'] == 3

  def test_result_of_non_expression_statement_is_nil(self, run):
    interpreter = run("func f() { let x = 1; } let r = f();")
    assert interpreter.lookup("r")['type'] == "Nil"

  def test_empty_body_returns_nil(self, run):
    interpreter = run("func f() {} let r = f();")
    assert interpreter.lookup("r")['type'] == "Nil"

  def test_if_without_taken_branch_yields_nil(self, run):
    interpreter = run("func f() { if (false) 1; } let r = f();")
    assert interpreter.lookup("r")['type'] == "Nil"

  def test_lexical_not_dynamic_scope(self, run, capsys):
    run("""
    let x = "global";
    func show() { print(x); }
    func caller() { let x = "local"; show(); }
    caller();
    """)
    assert capsys.readouterr().out == "global\n"

  def test_closure_outlives_defining_scope(self, run, capsys):
    run("""
    let counter = nil;
    {
      let count = 0;
      func increment() { count += 1; print(count); }
      counter = increment;
    }
    counter();
    counter();
    """)
    assert capsys.readouterr().out == "1\n2\n"

  def test_closure_sees_later_updates(self, run, capsys):
    run("let x = 1; func get() { x; } x = 5; print(get());")
    assert capsys.readouterr().out == "5\n"

  def test_mutual_recursion(self, run):
    interpreter = run("""
    func isEven(n) { if (n == 0) true; else isOdd(n - 1); }
    func isOdd(n) { if (n == 0) false; else isEven(n - 1); }
    let r = isEven(10);
    """)
    assert interpreter.lookup("r")['value'] is True

  def test_parameters_shadow_globals(self, run, capsys):
    run("let a = 1; func f(a) { print(a); } f(99); print(a);")
    assert capsys.readouterr().out == "99\n1\n"

  def test_arguments_evaluated_left_to_right(self, run, capsys):
    run("""
    func trace(v) { print(v); v; }
    func pair(a, b) {}
    pair(trace(1), trace(2));
    """)
    assert capsys.readouterr().out == "1\n2\n"

  def test_function_returning_function(self, run):
    interpreter = run("""
    func makeAdder(n) {
      func add(x) { x + n; }
      add;
    }
    let r = makeAdder(10)(5);
    """)
    assert interpreter.lookup("r")['value'] == 15

  def test_arity_mismatch(self, run):
    with pytest.raises(SlimRuntimeError, match="add expects 2 arguments, got 1"):
      run("func add(a, b) { a + b; } add(1);")

  def test_undefined_callee(self, run):
    with pytest.raises(SlimRuntimeError, match="Undefined function 'missing'"):
      run("missing(1);")

  def test_undefined_callee_position(self, run):
    with pytest.raises(SlimRuntimeError) as info:
      run("let a = 1;\n  nothing();")
    assert (info.value.span.start_line, info.value.span.start_col) == (2, 3)

  def test_calling_a_number(self, run):
    with pytest.raises(SlimRuntimeError, match="Can only call functions, got number"):
      run("let x = 3; x();")

  def test_runaway_recursion_is_a_runtime_error(self, run):
    with pytest.raises(SlimRuntimeError, match="Maximum recursion depth exceeded"):
      run("func loop(n) { loop(n + 1); } loop(0);")

  def test_deeply_nested_expression_is_a_runtime_error(self):
    expression = NumberLiteral(1)
    for _ in range(20000):
      expression = Unary("-", expression)
    with pytest.raises(SlimRuntimeError, match="Maximum recursion depth exceeded"):
      create_interpreter().interpret([ExprStmt(expression)])


class TestPartialOutput:
  """A runtime error keeps output produced before it"""

  def test_output_before_error_is_kept(self, run, capsys):
    with pytest.raises(SlimRuntimeError):
      run('print("before"); 1 / 0; print("after");')
    assert capsys.readouterr().out == "before\n"
