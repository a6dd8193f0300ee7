"""
javacheck/typeinfo.py
═════════════════════

Static knowledge about Java types that the resolver and the rules share.

Types are plain strings throughout javacheck: ``"int"``, ``"double"``,
``"String"``, ``"char[]"``, ``"Box"``.  ``None`` means *unknown* and is
always treated optimistically: an unknown type is assignable to and from
anything, and never triggers a rule on its own.

Contents
────────
  • primitive lattice: widening, numeric promotion, narrowing
  • boxing between primitives and their wrapper classes
  • well-known ``java.lang`` classes and ``Object`` members
  • return types of frequently used library methods
"""

from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Optional, Sequence, Tuple

# ═════════════════════════════════════════════════════════════════════════
#  PRIMITIVE LATTICE
# ═════════════════════════════════════════════════════════════════════════

NUMERIC: FrozenSet[str] = frozenset({
    "byte", "short", "char", "int", "long", "float", "double",
})
INTEGRAL: FrozenSet[str] = frozenset({"byte", "short", "char", "int", "long"})
FLOATING: FrozenSet[str] = frozenset({"float", "double"})
PRIMITIVE_TYPES: FrozenSet[str] = NUMERIC | {"boolean", "void"}

# JLS 5.1.2 widening primitive conversions.
_WIDENING: Dict[str, FrozenSet[str]] = {
    "byte": frozenset({"short", "int", "long", "float", "double"}),
    "short": frozenset({"int", "long", "float", "double"}),
    "char": frozenset({"int", "long", "float", "double"}),
    "int": frozenset({"long", "float", "double"}),
    "long": frozenset({"float", "double"}),
    "float": frozenset({"double"}),
    "double": frozenset(),
}

WRAPPERS: Dict[str, str] = {
    "Byte": "byte",
    "Short": "short",
    "Character": "char",
    "Integer": "int",
    "Long": "long",
    "Float": "float",
    "Double": "double",
    "Boolean": "boolean",
}
BOXES: Dict[str, str] = {v: k for k, v in WRAPPERS.items()}


def unbox(t: Optional[str]) -> Optional[str]:
    """Primitive behind a wrapper type, or *t* itself."""
    if t is None:
        return None
    return WRAPPERS.get(t, t)


def is_numeric(t: Optional[str]) -> bool:
    return unbox(t) in NUMERIC


def is_integral(t: Optional[str]) -> bool:
    return unbox(t) in INTEGRAL


def is_floating(t: Optional[str]) -> bool:
    return unbox(t) in FLOATING


def is_array(t: Optional[str]) -> bool:
    return t is not None and t.endswith("[]")


def is_reference(t: Optional[str]) -> bool:
    return t is not None and t not in PRIMITIVE_TYPES


def element_type(t: Optional[str]) -> Optional[str]:
    """``int[][]`` → ``int[]``; None for non-arrays."""
    if not is_array(t):
        return None
    return t[:-2]  # type: ignore[index]


def array_of(t: Optional[str], dims: int = 1) -> Optional[str]:
    if t is None:
        return None
    return t + "[]" * dims


def widens_to(source: str, target: str) -> bool:
    """True when *source* → *target* is an identity or widening conversion."""
    return source == target or target in _WIDENING.get(source, frozenset())


def unary_promotion(t: Optional[str]) -> Optional[str]:
    p = unbox(t)
    if p in ("byte", "short", "char"):
        return "int"
    return p if p in NUMERIC else None


def binary_promotion(a: Optional[str], b: Optional[str]) -> Optional[str]:
    pa, pb = unbox(a), unbox(b)
    if pa not in NUMERIC or pb not in NUMERIC:
        return None
    for wide in ("double", "float", "long"):
        if wide in (pa, pb):
            return wide
    return "int"


def is_narrowing(target: Optional[str], source: Optional[str]) -> bool:
    """True when assigning *source* to *target* loses numeric range or precision."""
    t, s = unbox(target), unbox(source)
    if t not in NUMERIC or s not in NUMERIC:
        return False
    return not widens_to(s, t)


# ═════════════════════════════════════════════════════════════════════════
#  ASSIGNMENT COMPATIBILITY
# ═════════════════════════════════════════════════════════════════════════

SubtypeCheck = Callable[[str, str], Optional[bool]]

#: Reference types every class type is assignable to.
UNIVERSAL_SUPERTYPES: FrozenSet[str] = frozenset({"Object"})


def assignable(
    target: Optional[str],
    source: Optional[str],
    subtype: Optional[SubtypeCheck] = None,
) -> bool:
    """
    Optimistic assignment compatibility.

    Unknown on either side is compatible.  *subtype(sub, sup)* answers for
    locally declared class types and returns None when it cannot decide.
    Numeric narrowing is reported as compatible here; it is the business
    of the lossy-conversion rule, not of type mismatch.
    """
    if target is None or source is None or target == source:
        return True
    if target == "void" or source == "void":
        return False
    if source == "null":
        return target not in PRIMITIVE_TYPES
    if target in UNIVERSAL_SUPERTYPES:
        return True
    ut, us = unbox(target), unbox(source)
    if ut in NUMERIC and us in NUMERIC:
        return True
    if ut == us:
        return True  # boxing / unboxing
    if target in PRIMITIVE_TYPES or source in PRIMITIVE_TYPES:
        # primitive ↔ unrelated reference: Number, Comparable, ... are fine
        if target in ("Number", "Comparable", "Serializable") and us in NUMERIC:
            return True
        return False
    if is_array(target) != is_array(source):
        return target in ("Cloneable", "Serializable")
    if is_array(target):
        return assignable(element_type(target), element_type(source), subtype)
    if target == "String" or source == "String":
        return target in ("CharSequence", "Comparable", "Serializable")
    if subtype is not None:
        verdict = subtype(source, target)
        if verdict is not None:
            return verdict
    return True


# ═════════════════════════════════════════════════════════════════════════
#  WELL-KNOWN LIBRARY SURFACE
# ═════════════════════════════════════════════════════════════════════════

JAVA_LANG_CLASSES: FrozenSet[str] = frozenset({
    "Object", "String", "StringBuilder", "StringBuffer", "CharSequence",
    "Math", "StrictMath", "System", "Runtime", "Thread", "Runnable",
    "Number", "Integer", "Long", "Double", "Float", "Short", "Byte",
    "Character", "Boolean", "Void", "Class", "Enum", "Record", "Iterable",
    "Comparable", "Cloneable", "AutoCloseable", "Process", "ClassLoader",
    "Throwable", "Exception", "Error", "RuntimeException",
    "ArithmeticException", "ArrayIndexOutOfBoundsException",
    "ClassCastException", "CloneNotSupportedException",
    "IllegalArgumentException", "IllegalStateException",
    "IndexOutOfBoundsException", "InterruptedException",
    "NegativeArraySizeException", "NullPointerException",
    "NumberFormatException", "SecurityException",
    "StringIndexOutOfBoundsException", "UnsupportedOperationException",
    "AssertionError", "OutOfMemoryError", "StackOverflowError",
    "Override", "Deprecated", "SuppressWarnings", "FunctionalInterface",
    "SafeVarargs",
})

OBJECT_METHODS: Dict[str, Optional[str]] = {
    "toString": "String",
    "equals": "boolean",
    "hashCode": "int",
    "getClass": "Class",
    "clone": "Object",
    "finalize": "void",
    "notify": "void",
    "notifyAll": "void",
    "wait": "void",
}

# Marker: the result type is the binary numeric promotion of the arguments.
PROMOTE = "<promote>"

STRING_METHODS: Dict[str, Optional[str]] = {
    "length": "int",
    "charAt": "char",
    "codePointAt": "int",
    "substring": "String",
    "subSequence": "CharSequence",
    "indexOf": "int",
    "lastIndexOf": "int",
    "equals": "boolean",
    "equalsIgnoreCase": "boolean",
    "compareTo": "int",
    "compareToIgnoreCase": "int",
    "contains": "boolean",
    "contentEquals": "boolean",
    "startsWith": "boolean",
    "endsWith": "boolean",
    "matches": "boolean",
    "isEmpty": "boolean",
    "isBlank": "boolean",
    "toUpperCase": "String",
    "toLowerCase": "String",
    "trim": "String",
    "strip": "String",
    "stripLeading": "String",
    "stripTrailing": "String",
    "replace": "String",
    "replaceAll": "String",
    "replaceFirst": "String",
    "concat": "String",
    "repeat": "String",
    "intern": "String",
    "formatted": "String",
    "split": "String[]",
    "toCharArray": "char[]",
    "getBytes": "byte[]",
    "chars": None,
    "lines": None,
    "describeConstable": None,
    "hashCode": "int",
    "toString": "String",
    "getClass": "Class",
    # static
    "valueOf": "String",
    "format": "String",
    "join": "String",
    "copyValueOf": "String",
}

STATIC_METHODS: Dict[Tuple[str, str], Optional[str]] = {
    ("Integer", "parseInt"): "int",
    ("Integer", "valueOf"): "Integer",
    ("Integer", "toString"): "String",
    ("Integer", "max"): "int",
    ("Integer", "min"): "int",
    ("Integer", "sum"): "int",
    ("Integer", "compare"): "int",
    ("Long", "parseLong"): "long",
    ("Long", "valueOf"): "Long",
    ("Double", "parseDouble"): "double",
    ("Double", "valueOf"): "Double",
    ("Double", "toString"): "String",
    ("Float", "parseFloat"): "float",
    ("Float", "valueOf"): "Float",
    ("Short", "parseShort"): "short",
    ("Byte", "parseByte"): "byte",
    ("Boolean", "parseBoolean"): "boolean",
    ("Character", "getNumericValue"): "int",
    ("Character", "isDigit"): "boolean",
    ("Character", "isLetter"): "boolean",
    ("Character", "isLetterOrDigit"): "boolean",
    ("Character", "isWhitespace"): "boolean",
    ("Character", "isUpperCase"): "boolean",
    ("Character", "isLowerCase"): "boolean",
    ("Character", "toUpperCase"): "char",
    ("Character", "toLowerCase"): "char",
    ("Character", "toString"): "String",
    ("String", "valueOf"): "String",
    ("String", "format"): "String",
    ("String", "join"): "String",
    ("Math", "sqrt"): "double",
    ("Math", "cbrt"): "double",
    ("Math", "pow"): "double",
    ("Math", "random"): "double",
    ("Math", "floor"): "double",
    ("Math", "ceil"): "double",
    ("Math", "exp"): "double",
    ("Math", "log"): "double",
    ("Math", "log10"): "double",
    ("Math", "sin"): "double",
    ("Math", "cos"): "double",
    ("Math", "tan"): "double",
    ("Math", "atan"): "double",
    ("Math", "atan2"): "double",
    ("Math", "hypot"): "double",
    ("Math", "toRadians"): "double",
    ("Math", "toDegrees"): "double",
    ("Math", "rint"): "double",
    ("Math", "signum"): PROMOTE,
    ("Math", "abs"): PROMOTE,
    ("Math", "max"): PROMOTE,
    ("Math", "min"): PROMOTE,
    ("Math", "floorDiv"): PROMOTE,
    ("Math", "floorMod"): PROMOTE,
    ("System", "currentTimeMillis"): "long",
    ("System", "nanoTime"): "long",
    ("System", "getProperty"): "String",
    ("System", "lineSeparator"): "String",
    ("Arrays", "toString"): "String",
    ("Arrays", "deepToString"): "String",
    ("Arrays", "equals"): "boolean",
}

STATIC_FIELDS: Dict[Tuple[str, str], str] = {
    ("Math", "PI"): "double",
    ("Math", "E"): "double",
    ("Integer", "MAX_VALUE"): "int",
    ("Integer", "MIN_VALUE"): "int",
    ("Long", "MAX_VALUE"): "long",
    ("Long", "MIN_VALUE"): "long",
    ("Double", "MAX_VALUE"): "double",
    ("Double", "MIN_VALUE"): "double",
    ("Float", "MAX_VALUE"): "float",
    ("Short", "MAX_VALUE"): "short",
    ("Byte", "MAX_VALUE"): "byte",
    ("Character", "MAX_VALUE"): "char",
}

#: Methods whose argument is expected to be a String of digits.
STRING_PARSERS: FrozenSet[Tuple[str, str]] = frozenset({
    ("Integer", "parseInt"),
    ("Integer", "valueOf"),
    ("Long", "parseLong"),
    ("Long", "valueOf"),
    ("Short", "parseShort"),
    ("Byte", "parseByte"),
})

INSTANCE_METHODS: Dict[str, Dict[str, Optional[str]]] = {
    "Scanner": {
        "nextInt": "int",
        "nextLong": "long",
        "nextDouble": "double",
        "nextFloat": "float",
        "nextShort": "short",
        "nextByte": "byte",
        "nextBoolean": "boolean",
        "nextLine": "String",
        "next": "String",
        "hasNext": "boolean",
        "hasNextInt": "boolean",
        "hasNextLine": "boolean",
        "hasNextDouble": "boolean",
        "close": "void",
    },
    "Random": {
        "nextInt": "int",
        "nextLong": "long",
        "nextDouble": "double",
        "nextFloat": "float",
        "nextBoolean": "boolean",
        "nextGaussian": "double",
    },
    "StringBuilder": {
        "toString": "String",
        "length": "int",
        "charAt": "char",
        "indexOf": "int",
        "append": "StringBuilder",
        "insert": "StringBuilder",
        "reverse": "StringBuilder",
        "deleteCharAt": "StringBuilder",
        "setLength": "void",
    },
    "BufferedReader": {"readLine": "String", "read": "int", "close": "void"},
    "ArrayList": {"size": "int", "isEmpty": "boolean", "contains": "boolean",
                  "add": "boolean", "indexOf": "int"},
    "List": {"size": "int", "isEmpty": "boolean", "contains": "boolean",
             "add": "boolean", "indexOf": "int"},
    "HashMap": {"size": "int", "isEmpty": "boolean", "containsKey": "boolean"},
    "Map": {"size": "int", "isEmpty": "boolean", "containsKey": "boolean"},
    "Integer": {"intValue": "int", "doubleValue": "double", "longValue": "long"},
    "Double": {"intValue": "int", "doubleValue": "double", "longValue": "long"},
}
INSTANCE_METHODS["StringBuffer"] = INSTANCE_METHODS["StringBuilder"]

#: Array members: ``length`` is a field, ``clone`` a method.
ARRAY_FIELDS: Dict[str, str] = {"length": "int"}


def base_name(t: Optional[str]) -> Optional[str]:
    """Strip package qualification: ``java.util.List`` → ``List``."""
    if t is None:
        return None
    return t.rsplit(".", 1)[-1]


def static_method_type(
    owner: str, name: str, arg_types: Sequence[Optional[str]]
) -> Tuple[bool, Optional[str]]:
    """``(known, return_type)`` for ``Owner.name(args)``."""
    key = (base_name(owner) or owner, name)
    if key not in STATIC_METHODS:
        return False, None
    rtype = STATIC_METHODS[key]
    if rtype == PROMOTE:
        result: Optional[str] = None
        for i, a in enumerate(arg_types):
            result = unary_promotion(a) if i == 0 else binary_promotion(result, a)
        return True, result
    return True, rtype


def instance_method_type(
    receiver: Optional[str], name: str
) -> Tuple[bool, Optional[str]]:
    """``(known, return_type)`` for ``receiver.name(...)`` on library types."""
    recv = base_name(receiver)
    if recv is None:
        return False, None
    if recv == "String":
        if name in STRING_METHODS:
            return True, STRING_METHODS[name]
        return False, None
    table = INSTANCE_METHODS.get(recv)
    if table is not None and name in table:
        return True, table[name]
    if name in OBJECT_METHODS:
        return True, OBJECT_METHODS[name]
    return False, None


__all__ = [
    "NUMERIC", "INTEGRAL", "FLOATING", "PRIMITIVE_TYPES", "WRAPPERS", "BOXES",
    "unbox", "is_numeric", "is_integral", "is_floating", "is_array",
    "is_reference", "element_type", "array_of", "widens_to",
    "unary_promotion", "binary_promotion", "is_narrowing", "assignable",
    "JAVA_LANG_CLASSES", "OBJECT_METHODS", "STRING_METHODS",
    "STATIC_METHODS", "STATIC_FIELDS", "STRING_PARSERS", "INSTANCE_METHODS", "ARRAY_FIELDS",
    "base_name", "static_method_type", "instance_method_type",
]
