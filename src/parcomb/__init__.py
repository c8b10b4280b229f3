"""
Parser combinators with mergeable error diagnostics.

Build small parsers with the primitive matchers, and combine them into bigger ones.

See the objects for more explanations.

See the `parcomb.general` module for general purpose parsers.

Defining parsers:
```
key = token('"') >> none_of('"').repeat(at_least=0).join() << token('"')
pair = combine(lambda k, v: (k, v), key.name("key") << token(":"), lazy(lambda: value))
value = string("null").map(lambda _: None) | key | ...
```

Using parsers:
```
result = pair.parse('"a":null')

if isinstance(result, ParseError):
    print(result)   # expected ..., but found ...
else:
    ...             # `result` is the output
```
"""

import parcomb.const as const
import parcomb.main
from parcomb.main import (
    Parser,
    Success,
    ParseError,
    ParseResult,
    TokenStream,
    Context,
    EndOfInput,
    FailMarker,
    OneOf,
    NoneOf,
    END_OF_INPUT,
    FAIL,
    token,
    not_token,
    one_of,
    none_of,
    string,
    alternatives,
    lazy,
    curry,
    combine,
)
import parcomb.general as general
