from cuotas.errors import ValidationError

TEMPLATE = """P001,Juan Pérez
P002,María García
P003,Carlos López"""


def parse_bulk_text(text):
    """
    Una línea por participante: 'CODIGO,Nombre completo'. Las líneas vacías
    o sin coma se ignoran. Devuelve lista de (code, full_name).
    """
    participants = []
    for line in (text or "").strip().splitlines():
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(",")]
        if len(parts) >= 2 and parts[0] and parts[1]:
            participants.append((parts[0], parts[1]))
    return participants


def check_duplicate_codes(entries):
    seen = set()
    duplicates = []
    for code, _ in entries:
        if code in seen and code not in duplicates:
            duplicates.append(code)
        seen.add(code)
    if duplicates:
        raise ValidationError(f"Códigos duplicados encontrados: {', '.join(duplicates)}")


def prepare_bulk_upload(text):
    entries = parse_bulk_text(text)
    if not entries:
        raise ValidationError("No hay datos válidos para cargar")
    check_duplicate_codes(entries)
    return entries
