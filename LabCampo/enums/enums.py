from enum import Enum


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value):
        """Permitir valores independientemente del case ("PROGRAMADA" == "programada")"""
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


# =====================================================
# 🗓️ PROGRAMACIONES
# =====================================================
class EstadoProgramacionEnum(_CaseInsensitiveEnum):
    programada = "programada"
    en_proceso = "en_proceso"
    completada = "completada"
    cancelada = "cancelada"
    reprogramada = "reprogramada"  # Marca transitoria durante una reprogramación


class EventoProgramacionEnum(_CaseInsensitiveEnum):
    iniciar = "iniciar"
    completar = "completar"
    cancelar = "cancelar"
    reprogramar = "reprogramar"
    eliminar = "eliminar"  # No es transición; se valida contra la misma máquina de estados


class TipoProgramacionEnum(_CaseInsensitiveEnum):
    obra_por_visita = "obra_por_visita"
    obra_por_estancia = "obra_por_estancia"


class TipoRecoleccionEnum(_CaseInsensitiveEnum):
    metros_cuadrados = "metros_cuadrados"
    metros_cubicos = "metros_cubicos"
    metros_lineales = "metros_lineales"
    sondeo = "sondeo"
    piezas = "piezas"
    condensacion = "condensacion"


# Estados que ocupan al recurso en su slot
ESTADOS_ACTIVOS = (EstadoProgramacionEnum.programada, EstadoProgramacionEnum.en_proceso)


# =====================================================
# 🚚 RECURSOS
# =====================================================
class TipoRecursoEnum(_CaseInsensitiveEnum):
    brigadista = "brigadista"
    vehiculo = "vehiculo"


# =====================================================
# 💰 PRESUPUESTOS
# =====================================================
class PresupuestoEstadoEnum(_CaseInsensitiveEnum):
    borrador = "borrador"
    enviado = "enviado"
    aprobado = "aprobado"
    rechazado = "rechazado"
    finalizado = "finalizado"
