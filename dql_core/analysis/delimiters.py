def find_matching_paren(text: str, open_index: int) -> int | None:
    """
    Return the index one past the ')' that closes the '(' at open_index.
    None if the text ends before depth returns to zero.
    """
    if open_index < 0 or open_index >= len(text) or text[open_index] != "(":
        return None
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
    return None
