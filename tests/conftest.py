# tests/conftest.py
"""
Shared fixtures and sample units for the javacheck test-suite.

Each sample is a small Java unit with one injected defect (or none),
modelled on the dataset's erroneous / corrected pairs.
"""

from __future__ import annotations

from typing import List

import pytest

from javacheck.checkers import CheckerRunner
from javacheck.config import AnalysisConfig
from javacheck.diagnostics import Category
from javacheck.parser import parse
from javacheck.pipeline import Pipeline
from javacheck.reporter import UnitReport
from javacheck.resolver import ResolvedUnit, resolve
from javacheck.symbols import build_symbol_table


# ═══════════════════════════════════════════════════════════════════════════
#  SAMPLE UNITS
# ═══════════════════════════════════════════════════════════════════════════

MISSING_RETURN_TYPE = """\
public class Test {
    public someName(String s) throws Exception {
        String maks = s;
        return maks;
    }
}
"""

MISSING_RETURN_TYPE_FIXED = """\
public class Test {
    public String someName(String s) throws Exception {
        String maks = s;
        return maks;
    }
}
"""

ILLEGAL_CONSTRUCTOR = """\
public class Bicycle {
    private int cadence;
    private int gear;
    private int speed;

    public Bike(int startCadence, int startSpeed, int startGear) {
        gear = startGear;
        cadence = startCadence;
        speed = startSpeed;
    }

    public int getGear() {
        return gear;
    }
}
"""

ILLEGAL_CONSTRUCTOR_FIXED = ILLEGAL_CONSTRUCTOR.replace("public Bike(", "public Bicycle(")

MISSING_VOID = """\
public class Printer {
    private int count = 0;

    public printAll(String[] items) {
        for (String item : items) {
            System.out.println(item);
            count++;
        }
    }
}
"""

NON_STATIC_VARIABLE = """\
public class Slide {
    int cells = 5;

    public static void main(String[] args) {
        System.out.println(cells);
    }
}
"""

NON_STATIC_VARIABLE_FIXED = NON_STATIC_VARIABLE.replace("int cells", "static int cells")

NON_STATIC_METHOD = """\
public class Calculator {
    int square(int x) {
        return x * x;
    }

    public static void main(String[] args) {
        int y = square(4);
        System.out.println(y);
    }
}
"""

VISIT_PRIVATE = """\
class ProductionWorker {
    private double rateOfPay;

    public ProductionWorker(double rate) {
        rateOfPay = rate;
    }
}

class TeamLeader extends ProductionWorker {
    public TeamLeader(double rate) {
        super(rate);
    }

    public double calcPay(int hours) {
        return rateOfPay * hours;
    }
}
"""

STRING_INDEX = """\
public class Digits {
    public static int sum(String number) {
        int total = 0;
        for (int i = 0; i < number.length(); i++) {
            total += number[i];
        }
        return total;
    }
}
"""

UNINITIALIZED_LOCAL = """\
public class Counter {
    public static int count(int[] values) {
        int total;
        for (int v : values) {
            total += v;
        }
        return total;
    }
}
"""

LOSSY_CONVERSION = """\
public class Average {
    public static int mean(int a, int b) {
        int result = (a + b) / 2.0;
        return result;
    }
}
"""

BAD_INVOCATION = """\
public class Greeter {
    static String greet(String name, int times) {
        String out = "";
        for (int i = 0; i < times; i++) {
            out = out + name;
        }
        return out;
    }

    public static void main(String[] args) {
        System.out.println(greet("bob"));
    }
}
"""

UNDECLARED_VARIABLE = """\
public class Area {
    public static double circle(double r) {
        return PI_VALUE * r * r;
    }
}
"""

INCOMPATIBLE_RETURN = """\
public class Names {
    public static int first(String[] names) {
        return names[0];
    }
}
"""

MISSING_RETURN_VALUE = """\
public class Grade {
    public static char letter(int score) {
        if (score >= 90) {
            return 'A';
        } else if (score >= 80) {
            return 'B';
        }
    }
}
"""

CLEAN_UNIT = """\
import java.util.ArrayList;
import java.util.List;

public class Inventory {
    private final List<String> items = new ArrayList<>();
    private int limit;

    public Inventory(int limit) {
        this.limit = limit;
    }

    public boolean add(String item) {
        if (items.size() >= limit) {
            return false;
        }
        items.add(item);
        return true;
    }

    public int size() {
        return items.size();
    }

    public static void main(String[] args) {
        Inventory inv = new Inventory(3);
        inv.add("apple");
        System.out.println(inv.size());
    }
}
"""

#: (sample, expected category) pairs, one per defect category
DEFECT_SAMPLES = [
    (MISSING_RETURN_TYPE, Category.MISSING_RETURN_TYPE),
    (MISSING_VOID, Category.MISSING_VOID),
    (VISIT_PRIVATE, Category.VISIT_PRIVATE),
    (STRING_INDEX, Category.STRING_ACCESS_BY_INDEX),
    (UNINITIALIZED_LOCAL, Category.USE_UNINITIALIZED_INSTANCE_VARIABLE),
    (LOSSY_CONVERSION, Category.LOSSY_CONVERSION),
    (BAD_INVOCATION, Category.BAD_INVOCATION),
    (UNDECLARED_VARIABLE, Category.USE_UNDECLARED_VARIABLE),
    (NON_STATIC_VARIABLE, Category.ACCESS_NON_STATIC_VARIABLE),
    (INCOMPATIBLE_RETURN, Category.INCOMPATIBLE_RETURN_TYPES),
    (ILLEGAL_CONSTRUCTOR, Category.ILLEGAL_CONSTRUCTOR_NAME),
    (MISSING_RETURN_VALUE, Category.MISSING_RETURN_VALUE),
    (NON_STATIC_METHOD, Category.ACCESS_NON_STATIC_METHOD),
]


# ═══════════════════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def resolve_source(text: str) -> ResolvedUnit:
    """Parse and resolve *text* in one step."""
    unit = parse(text).unit
    return resolve(unit, build_symbol_table(unit))


def run_rules(text: str, *names: str) -> List:
    """Raw diagnostics of the named rules (all rules when none given)."""
    result = parse(text)
    resolved = resolve(result.unit)
    run = CheckerRunner().run(
        resolved, comments=result.comments, checkers=list(names) or None,
    )
    return run.diagnostics


def analyze(text: str, config: AnalysisConfig = None) -> UnitReport:
    return Pipeline(config).analyze(text, "Sample.java").report


def categories(report: UnitReport) -> List[Category]:
    return [d.category for d in report.diagnostics]


# ═══════════════════════════════════════════════════════════════════════════
#  FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def pipeline() -> Pipeline:
    return Pipeline()


@pytest.fixture
def dataset(tmp_path):
    """
    A miniature dataset tree::

        Java/01-missing-return-type/1/[E]Test.java
        Java/01-missing-return-type/1/[C]Test.java
        Java/01-missing-return-type/1/[P]Test.txt
        Java/11-access-non-static-variable/1/[E]Slide.java
        Java/11-access-non-static-variable/1/[C]Slide.java
    """
    root = tmp_path / "Java"
    one = root / "01-missing-return-type" / "1"
    one.mkdir(parents=True)
    (one / "[E]Test.java").write_text(MISSING_RETURN_TYPE)
    (one / "[C]Test.java").write_text(MISSING_RETURN_TYPE_FIXED)
    (one / "[P]Test.txt").write_text("2 12\ninvalid method declaration; return type required\n")
    two = root / "11-access-non-static-variable" / "1"
    two.mkdir(parents=True)
    (two / "[E]Slide.java").write_text(NON_STATIC_VARIABLE)
    (two / "[C]Slide.java").write_text(NON_STATIC_VARIABLE_FIXED)
    return root
