"""
Static evidence tables used by the classifier, region resolver and reconciler.

Everything here is built once at import time and exposed as read-only
structures (tuples, frozensets and mapping proxies).
"""
import re
from types import MappingProxyType
from typing import Dict, Tuple

from .models import NATIONWIDE, UNKNOWN_CATEGORY, UNKNOWN_REGION
from .utils import normalize_text, unique


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

# Order defines tie-break precedence: earlier categories win ties
CATEGORY_ORDER: Tuple[str, ...] = (
    "Alojamiento",
    "Excursiones y Actividades",
    "Transporte",
    "Gastronomía",
    "Retail / Comercios",
    "Deportes y Gimnasios",
    "Salud",
    "Educación",
    "Servicios",
)

CATEGORY_LABELS: Tuple[str, ...] = CATEGORY_ORDER + (UNKNOWN_CATEGORY,)

_RAW_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Alojamiento": (
        "alojamiento", "hospedaje", "estadia", "estadía", "descanso",
        "hotel", "hosteria", "hostería", "posada", "cabaña", "cabañas", "casa de campo",
        "departamento", "departamentos", "apart", "apart hotel", "apart-hotel", "duplex", "dúplex",
        "bungalow", "resort", "spa", "spa & resort", "lodge", "boutique",
        "habitacion", "habitaciones", "suite", "deluxe", "standard", "superior",
        "noche", "noches", "pension", "pensión", "media pension", "pensión completa", "all inclusive",
        "check in", "check-in", "check out", "check-out",
        "reserva", "reservas", "disponibilidad", "tarifa", "tarifas",
        "complejo turistico", "complejo turístico", "complejo", "tower", "class",
    ),
    "Excursiones y Actividades": (
        "excursion", "excursión", "excursiones", "tour", "paseo", "itinerario", "visita", "entrada", "ticket",
        "parque", "termas", "avistaje", "catamaran", "catamarán", "fluvial", "museo", "circuito", "trekking",
        "aventura", "turismo", "viaje de bodas", "luna de miel", "honeymoon",
    ),
    "Transporte": (
        "transfer", "traslado", "remis", "taxi", "alquiler de auto", "alquiler auto", "rent a car", "rentacar", "rent car",
        "pasaje", "micro", "bus", "omnibus", "ómnibus", "aeropuerto", "terminal",
        "hertz", "chevalier", "crucero del norte", "rutatlantica", "rutatlántica",
    ),
    "Gastronomía": (
        "restaurant", "restaurante", "parrilla", "resto bar",
        "cafe", "café", "cerveceria", "cervecería", "pizzeria", "pizzería",
        "almuerzo", "cena", "desayuno", "comida", "platos", "cocina",
        "gastronomia", "gastronomía", "buffet", "confiteria", "confitería", "bar", "menu", "menú",
    ),
    "Retail / Comercios": (
        "tienda", "local", "indumentaria", "calzado", "boutique", "outlet", "descuento",
        "artesania", "artesanía", "compras", "shopping", "ropa", "zapatos", "accesorios",
    ),
    "Deportes y Gimnasios": (
        "gimnasio", "gym", "fitness", "entrenamiento", "natacion", "natación", "pilates", "yoga",
        "megatlon", "sport", "deporte", "crossfit", "spinning",
    ),
    "Salud": (
        "obra social", "clinica", "clínica", "sanatorio", "odontologia", "odontología", "farmacia",
        "optica", "óptica", "laboratorio", "medico", "médico", "hospital", "salud",
    ),
    "Educación": (
        "curso", "taller", "capacitacion", "capacitación", "instituto", "universidad", "idioma",
        "colegio", "escuela", "formacion", "formación", "educacion", "educación",
    ),
    "Servicios": (
        "jubilacion", "jubilación", "jubilarte", "jubilado", "jubilada", "pension", "pensión",
        "reafiliate", "reafiliación", "afiliación", "afiliado", "afiliada",
        "sepelio", "funeral", "cobertura", "seguro", "seguros", "aseguradora",
        "asesoramiento", "asesorar", "consultoría", "tramite", "trámite", "gestión",
        "beneficio social", "servicio social", "prestación", "asistencia",
    ),
}

# Accent variants collapse to one normalized keyword, so each counts once
CATEGORY_KEYWORDS = MappingProxyType({
    cat: tuple(unique(normalize_text(kw) for kw in _RAW_KEYWORDS[cat]))
    for cat in CATEGORY_ORDER
})

# Template words ignored when scanning the detail body
DETAIL_BLACKLIST = frozenset({"menu"})

BRAND_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bmegatlon\b|\bsport\s*club\b|\bonfit\b", re.I), "Deportes y Gimnasios"),
    (re.compile(r"\bhertz\b", re.I), "Transporte"),
    (re.compile(r"\bchevalier\b|\bcrucero del norte\b|\brutatl[áa]ntica\b", re.I), "Transporte"),
    (re.compile(r"\bvia\s+bariloche\b|\bflecha\s+bus\b|\bandisur\b", re.I), "Transporte"),
    (re.compile(r"\burbana\s*class\b", re.I), "Alojamiento"),
    (re.compile(r"\bpremium\s*tower\b", re.I), "Alojamiento"),
    (re.compile(r"\bhoward\s*johnson\b", re.I), "Alojamiento"),
    (re.compile(r"\bbag[uú]\b", re.I), "Alojamiento"),
    (re.compile(r"\bs[ií]\s*turismo\b", re.I), "Excursiones y Actividades"),
    (re.compile(r"\bel\s*surco\b", re.I), "Servicios"),
)

# Title wording that votes directly for a category; matched on normalized text
STRUCTURE_RULES: Tuple[Tuple[re.Pattern, str, float], ...] = (
    (re.compile(r"\b(hosteria|hotel|apart|cabanas?|posada)\b"), "Alojamiento", 0.9),
    (re.compile(r"\b(restaurant|restaurante|parrilla|resto\s*bar)\b"), "Gastronomía", 0.9),
    (re.compile(r"(jubil|pension|reafiliat|sepelio|funeral|seguro)"), "Servicios", 0.85),
    (re.compile(r"viaje\s*de\s*bodas|luna\s*de\s*miel|honeymoon"), "Excursiones y Actividades", 0.9),
    (re.compile(r"obra\s*social|beneficio\s*social"), "Salud", 0.85),
)
DISCOUNT_PATTERN = re.compile(r"\b\d+%\s*(de\s*)?(descuento|off|dto)\b")
LODGING_HINT_PATTERN = re.compile(r"(hotel|alojamiento|estadia)")

# Bundle wording in the title and the secondary signals that apportion weight
PACKAGE_TITLE_PATTERN = re.compile(r"(paquete|combo|promo|full|express|escapada)")
PACKAGE_NIGHTS_PATTERN = re.compile(r"\b(\d+)\s*(noche|noches|dia|dias)\b|\bnoches?\b")
PACKAGE_LODGING_PATTERN = re.compile(r"(hotel|hosteria|cabana|cabanas|alojamiento|apart)")
PACKAGE_TOURS_PATTERN = re.compile(r"(excursion|excursiones|tour|visita|entrada|paseo|itinerario)")
PACKAGE_TRANSFER_PATTERN = re.compile(r"(traslado|transfer|aeropuerto)")

SCHEMA_TYPE_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"lodging|hotel|resort|inn|hostel"), "Alojamiento"),
    (re.compile(r"restaurant|food|bar|cafe"), "Gastronomía"),
    (re.compile(r"gym|sports|fitness"), "Deportes y Gimnasios"),
    (re.compile(r"tour|attraction|travel|amusement|park"), "Excursiones y Actividades"),
    (re.compile(r"medical|clinic|health|pharmacy"), "Salud"),
    (re.compile(r"school|college|course|education"), "Educación"),
    (re.compile(r"insurance|service|consulting|funeral"), "Servicios"),
)

# Site taxonomy slugs (card CSS classes and badge terms) mapped to labels
SITE_CATEGORY_MAP = MappingProxyType({
    "deportes": "Deportes y Gimnasios",
    "accion-social": "Servicios",
    "obra-social": "Salud",
    "servicios": "Servicios",
    "salud": "Salud",
    "educacion": "Educación",
    "capacitacion": "Educación",
    "balnearios": "Alojamiento",
    "hoteles": "Alojamiento",
    "hospedaje": "Alojamiento",
    "turismo": "Excursiones y Actividades",
    "excursiones": "Excursiones y Actividades",
    "parques-recreativos": "Excursiones y Actividades",
    "cultura": "Excursiones y Actividades",
    "espectaculos": "Excursiones y Actividades",
    "entretenimiento": "Excursiones y Actividades",
    "restaurantes": "Gastronomía",
    "gastronomia": "Gastronomía",
    "bares": "Gastronomía",
    "cafeterias": "Gastronomía",
    "transporte": "Transporte",
    "retail": "Retail / Comercios",
    "comercio": "Retail / Comercios",
    "tiendas": "Retail / Comercios",
})


# ---------------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------------

REGIONS: Tuple[str, ...] = (
    "Buenos Aires", "CABA", "Catamarca", "Chaco", "Chubut", "Córdoba", "Corrientes", "Entre Ríos",
    "Formosa", "Jujuy", "La Pampa", "La Rioja", "Mendoza", "Misiones", "Neuquén", "Río Negro",
    "Salta", "San Juan", "San Luis", "Santa Cruz", "Santa Fe", "Santiago del Estero",
    "Tierra del Fuego", "Tucumán",
)

REGION_LABELS: Tuple[str, ...] = REGIONS + (NATIONWIDE, UNKNOWN_REGION)

# Official long forms scanned as exact names; CABA must win over Buenos Aires
REGION_FULL_NAMES = MappingProxyType({
    "CABA": ("ciudad autonoma de buenos aires", "capital federal"),
})

REGION_SCAN_ORDER: Tuple[str, ...] = tuple(
    sorted(REGIONS, key=lambda r: (r != "CABA", -len(r)))
)

REGION_ALIASES = MappingProxyType({
    "bs as": "Buenos Aires",
    "bs. as.": "Buenos Aires",
    "pcia de buenos aires": "Buenos Aires",
    "provincia de buenos aires": "Buenos Aires",
    "buenos aires": "Buenos Aires",
    "caba": "CABA",
    "capital federal": "CABA",
    "ciudad autonoma de buenos aires": "CABA",
    "rio negro": "Río Negro",
    "neuquen": "Neuquén",
    "sta fe": "Santa Fe",
    "sta. fe": "Santa Fe",
    "stgo del estero": "Santiago del Estero",
    "santiago del estero": "Santiago del Estero",
    "tierra del fuego": "Tierra del Fuego",
})

# Longest aliases first so "ciudad autonoma de buenos aires" beats "buenos aires"
ALIAS_KEYS: Tuple[str, ...] = tuple(sorted(REGION_ALIASES, key=len, reverse=True))

_RAW_CITIES: Dict[str, Tuple[str, ...]] = {
    "san lorenzo": ("Salta", "Santa Fe"),
    "santa rosa": ("La Pampa", "Mendoza"),
    "concepcion": ("Tucumán", "Corrientes"),
    "la paz": ("Entre Ríos", "Córdoba", "Mendoza"),
    "lago puelo": ("Chubut",),
    "bariloche": ("Río Negro",),
    "san carlos de bariloche": ("Río Negro",),
    "dina huapi": ("Río Negro",),
    "puerto madryn": ("Chubut",),
    "trelew": ("Chubut",),
    "esquel": ("Chubut",),
    "comodoro rivadavia": ("Chubut",),
    "ushuaia": ("Tierra del Fuego",),
    "el calafate": ("Santa Cruz",),
    "el chaltén": ("Santa Cruz",),
    "rio gallegos": ("Santa Cruz",),
    "merlo": ("San Luis",),
    "villa carlos paz": ("Córdoba",),
    "carlos paz": ("Córdoba",),
    "potrero de garay": ("Córdoba",),
    "villa general belgrano": ("Córdoba",),
    "san rafael": ("Mendoza",),
    "mendoza": ("Mendoza",),
    "tigre": ("Buenos Aires",),
    "mar del plata": ("Buenos Aires",),
    "mdq": ("Buenos Aires",),
    "chapadmalal": ("Buenos Aires",),
    "valeria del mar": ("Buenos Aires",),
    "la plata": ("Buenos Aires",),
    "tandil": ("Buenos Aires",),
    "sierra de la ventana": ("Buenos Aires",),
    "cariló": ("Buenos Aires",),
    "san bernardo": ("Buenos Aires",),
    "san clemente del tuyú": ("Buenos Aires",),
    "pinamar": ("Buenos Aires",),
    "monte hermoso": ("Buenos Aires",),
    "necochea": ("Buenos Aires",),
    "miramar": ("Buenos Aires",),
    "villa gesell": ("Buenos Aires",),
    "villa gessell": ("Buenos Aires",),
    "bahia blanca": ("Buenos Aires",),
    "baradero": ("Buenos Aires",),
    "ramallo": ("Buenos Aires",),
    "exaltación de la cruz": ("Buenos Aires",),
    "villa la angostura": ("Neuquén",),
    "san martín de los andes": ("Neuquén",),
    "junín de los andes": ("Neuquén",),
    "villa traful": ("Neuquén",),
    "iguazú": ("Misiones",),
    "puerto iguazú": ("Misiones",),
    "posadas": ("Misiones",),
    "rosario": ("Santa Fe",),
    "resistencia": ("Chaco",),
    "corrientes": ("Corrientes",),
    "concepción del uruguay": ("Entre Ríos",),
    "federación": ("Entre Ríos",),
    "san josé": ("Entre Ríos",),
    "gualeguaychu": ("Entre Ríos",),
    "concordia": ("Entre Ríos",),
    "río hondo": ("Santiago del Estero",),
    "termas de río hondo": ("Santiago del Estero",),
    "tilcara": ("Jujuy",),
    "san salvador de jujuy": ("Jujuy",),
    "villa unión": ("La Rioja",),
}

CITY_REGIONS = MappingProxyType({
    normalize_text(city): regions for city, regions in _RAW_CITIES.items()
})

# Longest city keys first so "san carlos de bariloche" shadows "bariloche"
CITY_KEYS: Tuple[str, ...] = tuple(sorted(CITY_REGIONS, key=len, reverse=True))

# Explicit nationwide wording, matched on normalized text
NATIONWIDE_PATTERN = re.compile(
    r"\b(alcance nacional|a nivel nacional|beneficio nacional|todo el pais|"
    r"toda la argentina|todo el territorio nacional|nationwide)\b"
)


# ---------------------------------------------------------------------------
# Validation, OCR and reconciliation tables
# ---------------------------------------------------------------------------

# (raw title pattern, overridable categories, correct category), applied in order
CORRECTION_RULES: Tuple[Tuple[re.Pattern, Tuple[str, ...], str], ...] = (
    (re.compile(r"jubil|retir|pension|reafiliat", re.I), ("Gastronomía", "Transporte"), "Servicios"),
    (re.compile(r"sepelio|funeral|entierro|deceso", re.I), ("Gastronomía", "Alojamiento"), "Servicios"),
    (re.compile(r"obra\s*social|beneficio\s*social", re.I), ("Gastronomía", "Transporte"), "Salud"),
    (re.compile(r"viaje\s*de\s*bodas|luna\s*de\s*miel|honeymoon|casamiento", re.I),
     ("Gastronomía", "Excursiones y Actividades"), "Servicios"),
    (re.compile(r"seguro|asegurad|cobertura\s*de", re.I), ("Gastronomía", "Alojamiento"), "Servicios"),
    (re.compile(r"hoster[ií]a", re.I), ("Gastronomía", "Transporte", "Servicios"), "Alojamiento"),
    (re.compile(r"hotel\b", re.I), ("Gastronomía", "Transporte", "Servicios"), "Alojamiento"),
    (re.compile(r"cabañas?", re.I), ("Gastronomía", "Transporte", "Servicios"), "Alojamiento"),
    (re.compile(r"termas?\b", re.I), ("Gastronomía", "Alojamiento"), "Excursiones y Actividades"),
    (re.compile(r"[oó]ptica|lentes|anteojos", re.I), ("Retail / Comercios",), "Salud"),
    (re.compile(r"parrilla|restaurante|restaurant|resto\s*bar", re.I), ("Alojamiento",), "Gastronomía"),
)
CORRECTION_FLOOR = 0.6

# Region fixes for stored records that came back nationwide or unknown
REGION_FIXES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"bag[uú]\s+ushuaia", re.I), "Tierra del Fuego"),
)

OCR_HINT_PATTERN = re.compile(
    r"promo|flyer|afiche|voucher|condiciones|bases|sucursal|sedes|tarifa|hotel|spa|term|beneficio",
    re.I,
)

# Cross-posting wrappers such as "Disfrutá de ..." (matched on normalized title)
AGGREGATOR_PATTERN = re.compile(r"^disfruta\b")

TRACKING_PARAM_PATTERN = re.compile(r"^(utm_|fbclid$|gclid$|mc_cid$|mc_eid$)", re.I)
