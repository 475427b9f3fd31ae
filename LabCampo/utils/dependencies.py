from fastapi import Header, HTTPException, status


def get_usuario_id(x_usuario_id: str | None = Header(None, alias="X-Usuario-Id")) -> int | None:
    """
    Id del usuario que reenvía el gateway de autenticación.

    El motor no valida identidades: solo guarda el id en creado_por /
    actualizado_por. Sin header se registra como None.
    """
    if x_usuario_id is None or not x_usuario_id.strip():
        return None
    try:
        return int(x_usuario_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Usuario-Id debe ser un entero",
        )
