r"""
Helmsman tokenizer: split one console line into argument tokens.

Grammar
- Tokens are separated by unquoted, unescaped whitespace.
- Double quotes group text, whitespace included, into one token; "" is an
  explicit empty token.
- A backslash escapes a backslash, a double quote or a whitespace character.
  Before any other character it is kept literally (a\xb stays a\xb).
- Unterminated quotes and dangling backslashes are tolerated: the text read so
  far is flushed as the final token, nothing is raised.

Helpers
- tokenize(line): the state machine itself (see SplitState).
- isolate(args): completion support for host-split arguments; everything but
  the last argument is re-tokenized, the last argument is the query.
- quote(token): the inverse, used to present completion candidates.

Examples
    >>> tokenize('say "hello world"')
    ['say', 'hello world']
    >>> tokenize('foo "bar')
    ['foo', 'bar']
    >>> tokenize(r'a\ b')
    ['a b']
"""
from enum import Enum, auto


class SplitState(Enum):
    """
    states of the tokenizer.

    - NORMAL: outside quotes.
    - ESCAPED: right after a backslash outside quotes.
    - QUOTED: inside double quotes.
    - QUOTED_ESCAPED: right after a backslash inside double quotes.
    """
    NORMAL = auto()
    ESCAPED = auto()
    QUOTED = auto()
    QUOTED_ESCAPED = auto()


def _escapable(char):
    return char in '\\"' or char.isspace()


def tokenize(line, /):
    """
    split a raw line into tokens, honoring double quotes and backslash escapes.

    notes
    - whitespace alone never produces a token; a quoted "" does (empty string).
    - the scan never fails: an open quote or escape at the end of the input
      simply ends the last token.
    """
    if not isinstance(line, str):
        raise TypeError("tokenize() argument must be a string")

    tokens = []
    current = []
    started = False
    state = SplitState.NORMAL

    for char in line:
        match state:
            case SplitState.NORMAL:
                if char == "\\":
                    state = SplitState.ESCAPED
                elif char == '"':
                    state = SplitState.QUOTED
                    started = True
                elif char.isspace():
                    if started:
                        tokens.append("".join(current))
                        current.clear()
                        started = False
                else:
                    current.append(char)
                    started = True
            case SplitState.ESCAPED | SplitState.QUOTED_ESCAPED:
                if not _escapable(char):
                    # not a valid escape, keep both characters
                    current.append("\\")
                current.append(char)
                started = True
                state = SplitState.NORMAL if state is SplitState.ESCAPED else SplitState.QUOTED
            case SplitState.QUOTED:
                if char == "\\":
                    state = SplitState.QUOTED_ESCAPED
                elif char == '"':
                    state = SplitState.NORMAL
                else:
                    current.append(char)

    # a dangling backslash is dropped
    if started:
        tokens.append("".join(current))
    return tokens


def isolate(args, /):
    """
    re-tokenize host-split arguments while keeping the last one as a query.

    hosts that split on spaces hand over fragments of quoted tokens; joining
    them back and tokenizing again restores the real tokens. the last fragment
    is the text under the cursor and is returned untouched.

    returns
    - (tokens, query): query is "" when args is empty.
    """
    args = list(args)
    if not args:
        return [], ""
    *head, query = args
    return tokenize(" ".join(head)), query


def quote(token, /):
    """
    return a form of token that tokenize() reads back as exactly [token].
    """
    if token and not any(_escapable(char) for char in token):
        return token
    return '"%s"' % token.replace("\\", "\\\\").replace('"', '\\"')


__all__ = (
    "SplitState",
    "tokenize",
    "isolate",
    "quote",
)
