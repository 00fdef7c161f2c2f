import re


def to_wire(text):
    if text is None:
        return None
    if isinstance(text, str):
        text = bytes(text, "utf-8")
    text = text.replace(b"\n", b"\r\n")
    text = text.replace(b"\r\r\n", b"\r\n")
    return text


def to_normal_str(text):
    """
    Make sure we return a str, decoding bytes as utf-8 if needed.
    Line endings are left alone.
    """
    if text is None:
        return text
    if not isinstance(text, str):
        text = text.decode("utf-8")
    return text


def lower_camel_case(name: str) -> str:
    """
    "employee_code" and "EmployeeCode" both become "employeeCode"
    """
    parts = [x for x in re.split(r"_+", name) if x]
    if not parts:
        return name
    first = parts[0][0].lower() + parts[0][1:]
    return first + "".join(x[0].upper() + x[1:] for x in parts[1:])
