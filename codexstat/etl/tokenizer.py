"""
Word-cloud tokenizer for codexstat.

Builds per-file token counts from user-authored message text. Code, URLs
and long hashes are stripped first; then a Latin-word pass and a CJK
n-gram pass run independently over the same text and their counts merge.
"""

import re
from collections import Counter
from typing import Dict, Iterable

CODE_FENCE_RE = re.compile(r"```[\s\S]*?```")
INLINE_CODE_RE = re.compile(r"`[^`\n]*`")
URL_RE = re.compile(r"(?:https?|ftp)://\S+|www\.\S+", re.IGNORECASE)
HEX_HASH_RE = re.compile(r"\b[0-9a-f]{32,}\b", re.IGNORECASE)

# Whole runs only: a run longer than 30 characters yields nothing
LATIN_WORD_RE = re.compile(r"(?<![a-z0-9_-])[a-z][a-z0-9_-]{1,29}(?![a-z0-9_-])")
CJK_RUN_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]{2,}")

# Runs up to this length are also counted whole
CJK_WHOLE_RUN_MAX = 4
CJK_TRIGRAM_MIN_RUN = 4

ENGLISH_STOPWORDS = frozenset("""
a about above after again against all also am an and any are aren as at be
because been before being below between both but by can cannot could did
didn do does doesn doing don down during each else etc even ever every few
for from further get got had hadn has hasn have haven having he her here
hers herself him himself his how however i if in into is isn it its itself
just let like ll made make many may me might more most much must mustn my
myself need no nor not now of off ok okay on once one only or other ought
our ours ourselves out over own please re really same say see shall shan
she should shouldn so some still such sure than that the their theirs them
themselves then there these they thing things this those through thus to
too under until up upon us use used using ve very via want was wasn way we
well were weren what when where whether which while who whom why will with
won would wouldn yes yet you your yours yourself yourselves
""".split())

CJK_STOPWORDS = frozenset("""
一个 一下 一些 一样 一直 不是 不会 不要 不能 为了 之后 也是 了解 什么 他们
以及 以后 但是 你们 使用 出来 可以 可能 只是 同时 因为 如何 如果 就是 已经
帮我 应该 我们 所以 所有 才能 把这 时候 是否 有没 有些 没有 然后 现在 的话
看看 知道 而且 自己 还是 这个 这些 这样 这里 进行 那个 那么 部分 需要 非常
怎么 为什么 是不是 有没有 一下子 可不可以
""".split())


def strip_noise(text: str) -> str:
    """Remove fenced code, inline code, URLs and long hex hashes."""
    text = CODE_FENCE_RE.sub(' ', text)
    text = INLINE_CODE_RE.sub(' ', text)
    text = URL_RE.sub(' ', text)
    text = HEX_HASH_RE.sub(' ', text)
    return text


def latin_tokens(text: str) -> Iterable[str]:
    """Lowercase Latin words of 2-30 characters, stopwords removed."""
    for match in LATIN_WORD_RE.finditer(text):
        word = match.group(0)
        if word not in ENGLISH_STOPWORDS:
            yield word


def cjk_tokens(text: str) -> Iterable[str]:
    """
    N-grams over runs of CJK ideographs.

    Short runs (<= 4) count whole; every run also contributes its bigrams,
    and runs of 4 or more their trigrams too.
    """
    for match in CJK_RUN_RE.finditer(text):
        run = match.group(0)
        n = len(run)

        if n <= CJK_WHOLE_RUN_MAX and run not in CJK_STOPWORDS:
            yield run

        for i in range(n - 1):
            gram = run[i:i + 2]
            if gram not in CJK_STOPWORDS:
                yield gram

        if n >= CJK_TRIGRAM_MIN_RUN:
            for i in range(n - 2):
                gram = run[i:i + 3]
                if gram not in CJK_STOPWORDS:
                    yield gram


def tokenize(text: str) -> Dict[str, int]:
    """
    Count word-cloud tokens in one file's user-authored text.

    Returns:
        Mapping token -> occurrence count
    """
    if not text:
        return {}
    cleaned = strip_noise(text).lower()
    counts = Counter(latin_tokens(cleaned))
    counts.update(cjk_tokens(cleaned))
    return dict(counts)
