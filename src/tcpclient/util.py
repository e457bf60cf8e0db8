def hexdump(data: bytes, start_address: int = 0, width: int = 16) -> str:
    """
    Format a bytes object in hex-editor style, ``width`` bytes per line,
    with an extra separator every 8 bytes in the hex column.

    Parameters:
    -----------
    data : bytes
        The data to dump.
    start_address : int, optional
        The offset to display at the beginning of the first line (default is 0).
    width : int, optional
        Bytes per line (default is 16).

    Returns:
    --------
    str
        The dump, one line per ``width`` bytes, no trailing newline.
    """
    group_size = 8
    # each byte is 2 hex chars plus a space, groups get one extra space
    hex_col_width = width * 2 + (width - 1) + (max(width // group_size, 1) - 1)

    lines = []
    for offset in range(0, len(data), width):
        chunk = data[offset : offset + width]

        hex_bytes = [f"{b:02X}" for b in chunk]
        groups = [
            hex_bytes[i : i + group_size]
            for i in range(0, len(hex_bytes), group_size)
        ]
        hex_col = "  ".join(" ".join(g) for g in groups)
        hex_col = hex_col.ljust(hex_col_width)

        # printable 32-126, else dot
        ascii_col = "".join((chr(b) if 32 <= b < 127 else ".") for b in chunk)

        lines.append(f"{start_address + offset:08X}  {hex_col}  {ascii_col}")
    return "\n".join(lines)
