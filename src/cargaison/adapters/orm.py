"""
Mapping ORM avec SQLAlchemy (classical mapping).

On définit les tables séparément, puis on mappe les classes
du domaine sur ces tables. Cela permet au modèle de domaine
de rester ignorant de la persistance (persistence ignorance).

Les noms de colonnes SQL restent en ASCII pour la compatibilité,
le mapping traduit vers les attributs français du domaine.
"""

from sqlalchemy import (
    Column,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    event,
)
from sqlalchemy.orm import registry, relationship

from cargaison.domain import model

metadata = MetaData()
mapper_registry = registry(metadata=metadata)

Kg = Numeric(14, 3)

# --- Agrégat Commande ---

commandes = Table(
    "commandes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reference", String(255), unique=True, nullable=False),
    Column("devise", String(3)),
    Column("type_commande", Enum(model.TypeCommande)),
    Column("client", String(255)),
    Column("numero_booking", String(255)),
    Column("destination", String(255)),
    Column("poids_carton", Kg, nullable=True),
    Column("montant_paye", Numeric(14, 2)),
    Column("statut_bon", Enum(model.StatutBonDeCommande)),
    Column("statut_soumission", Enum(model.StatutSoumission)),
    Column("numero_version", Integer, nullable=False, server_default="0"),
)

lignes_commande = Table(
    "lignes_commande",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("commande_id", Integer, ForeignKey("commandes.id")),
    Column("article_id", String(255)),
    Column("depot_id", String(255)),
    Column("quantite_kg", Kg),
    Column("prix_unitaire", Numeric(14, 4)),
    Column("kg_par_carton", Kg, nullable=True),
    Column("libelle_article", String(255), nullable=True),
    Column("libelle_depot", String(255), nullable=True),
    Column("quantite_soumise_kg", Kg, nullable=True),
    Column("quantite_manquante_kg", Kg),
)

cargos = Table(
    "cargos",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("commande_id", Integer, ForeignKey("commandes.id")),
    Column("nom", String(255)),
    Column("no_conteneur", String(255)),
    Column("no_plomb", String(255)),
    Column("poids_carton", Kg, nullable=True),
    Column("tare_conteneur", Kg, nullable=True),
)

articles_alloues = Table(
    "articles_alloues",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("cargo_id", Integer, ForeignKey("cargos.id")),
    Column("article_id", String(255)),
    Column("depot_id", String(255)),
    Column("quantite_allouee_kg", Kg),
    Column("quantite_carton", Integer),
    Column("no_conteneur", String(255)),
    Column("no_plomb", String(255)),
    Column("numero_lot", String(255)),
    Column("date_production", String(64)),
    Column("date_expiration", String(64)),
)

# --- Données externes et annexes ---

stocks = Table(
    "stocks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("article_id", String(255)),
    Column("depot_id", String(255)),
    Column("quantite_commercialisable_kg", Kg),
)

options_cargo = Table(
    "options_cargo",
    metadata,
    Column("reference", String(255), primary_key=True),
    Column("no_conteneur", String(255)),
    Column("no_plomb", String(255)),
    Column("numero_lot", String(255)),
    Column("date_production", String(64)),
    Column("date_expiration", String(64)),
)

# --- Read models (CQRS) ---

allocations_view = Table(
    "allocations_view",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reference", String(255)),
    Column("no_conteneur", String(255)),
    Column("article_id", String(255)),
    Column("depot_id", String(255)),
    Column("quantite_kg", Kg),
    Column("cartons", Integer),
)

quantites_manquantes_view = Table(
    "quantites_manquantes_view",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reference", String(255)),
    Column("article_id", String(255)),
    Column("depot_id", String(255)),
    Column("libelle_article", String(255)),
    Column("libelle_depot", String(255)),
    Column("quantite_manquante_kg", Kg),
)

_mappers_démarrés = False


def start_mappers() -> None:
    """
    Configure le mapping entre les classes du domaine et les tables SQL.

    Utilise le classical mapping : les classes du domaine ne connaissent
    pas SQLAlchemy. Sans effet si le mapping est déjà en place.
    """
    global _mappers_démarrés
    if _mappers_démarrés:
        return

    articles_mapper = mapper_registry.map_imperatively(
        model.ArticleAlloué,
        articles_alloues,
        properties={
            "quantité_allouée_kg": articles_alloues.c.quantite_allouee_kg,
            "quantité_carton": articles_alloues.c.quantite_carton,
            "numéro_lot": articles_alloues.c.numero_lot,
        },
    )
    cargos_mapper = mapper_registry.map_imperatively(
        model.Cargo,
        cargos,
        properties={
            "articles": relationship(
                articles_mapper,
                order_by=articles_alloues.c.id,
                cascade="all, delete-orphan",
            ),
        },
    )
    lignes_mapper = mapper_registry.map_imperatively(
        model.LigneDeCommande,
        lignes_commande,
        properties={
            "quantité_kg": lignes_commande.c.quantite_kg,
            "libellé_article": lignes_commande.c.libelle_article,
            "libellé_depot": lignes_commande.c.libelle_depot,
            "quantité_soumise_kg": lignes_commande.c.quantite_soumise_kg,
            "quantité_manquante_kg": lignes_commande.c.quantite_manquante_kg,
        },
    )
    mapper_registry.map_imperatively(
        model.Commande,
        commandes,
        properties={
            "référence": commandes.c.reference,
            "numéro_booking": commandes.c.numero_booking,
            "montant_payé": commandes.c.montant_paye,
            "numéro_version": commandes.c.numero_version,
            "lignes": relationship(
                lignes_mapper,
                order_by=lignes_commande.c.id,
                cascade="all, delete-orphan",
            ),
            "cargos": relationship(
                cargos_mapper,
                order_by=cargos.c.id,
                cascade="all, delete-orphan",
            ),
        },
    )
    _mappers_démarrés = True


@event.listens_for(model.Commande, "load")
def receive_load(commande: model.Commande, _: object) -> None:
    """Initialise la liste d'événements quand une Commande est chargée depuis la BDD."""
    commande.événements = []
