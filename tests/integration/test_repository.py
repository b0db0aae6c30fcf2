"""
Tests d'intégration du Repository avec SQLite en mémoire.

Ces tests vérifient que le mapping ORM fonctionne correctement :
- Sauvegarder et recharger une Commande avec ses lignes et cargos
- Les quantités Decimal et les statuts survivent à l'aller-retour
- Le stock et les options sont lus depuis leurs tables
"""

from decimal import Decimal

from sqlalchemy import create_engine, insert
from sqlalchemy.orm import sessionmaker

from cargaison.adapters import options, orm, repository, stock
from cargaison.domain.allocation import OptionsParDéfaut
from cargaison.domain.model import (
    ArticleAlloué,
    Cargo,
    Commande,
    LigneDeCommande,
    StatutSoumission,
)


def make_session():
    """Crée une session SQLite en mémoire avec les tables."""
    engine = create_engine("sqlite:///:memory:")
    orm.metadata.create_all(engine)
    return sessionmaker(bind=engine)()


def nouvelle_commande() -> Commande:
    commande = Commande("CMD-001", client="CLIENT-1", numéro_booking="BK-1", poids_carton="1.12")
    commande.ajouter_ligne(
        LigneDeCommande("POULPE", "NDB", "100.5", prix_unitaire="4.25", libellé_article="Poulpe")
    )
    commande.remplacer_cargos([
        Cargo(
            nom="MSC",
            no_conteneur="MSCU001",
            articles=[ArticleAlloué("POULPE", "NDB", 45, 3, numéro_lot="L42")],
        ),
        Cargo(nom="CMA"),
    ])
    return commande


class TestSqlAlchemyRepository:
    def test_sauvegarder_et_recharger_une_commande(self):
        session = make_session()
        repo = repository.SqlAlchemyRepository(session)

        repo.add(nouvelle_commande())
        session.commit()
        session.expunge_all()

        rechargée = repository.SqlAlchemyRepository(session).get("CMD-001")
        assert rechargée is not None
        assert rechargée.numéro_booking == "BK-1"
        assert rechargée.lignes[0].quantité_kg == Decimal("100.5")
        assert rechargée.lignes[0].libellé_article == "Poulpe"
        assert [c.nom for c in rechargée.cargos] == ["MSC", "CMA"]

    def test_les_allocations_survivent_au_rechargement(self):
        session = make_session()
        repo = repository.SqlAlchemyRepository(session)
        repo.add(nouvelle_commande())
        session.commit()
        session.expunge_all()

        rechargée = repo.get("CMD-001")

        [article] = rechargée.cargos[0].articles
        assert article.quantité_allouée_kg == Decimal("45")
        assert article.quantité_carton == 3
        assert article.numéro_lot == "L42"

    def test_la_commande_rechargée_a_une_liste_d_événements_vide(self):
        session = make_session()
        repository.SqlAlchemyRepository(session).add(nouvelle_commande())
        session.commit()
        session.expunge_all()

        rechargée = repository.SqlAlchemyRepository(session).get("CMD-001")

        assert rechargée.événements == []

    def test_soumission_persistée(self):
        session = make_session()
        repo = repository.SqlAlchemyRepository(session)
        commande = nouvelle_commande()
        commande.demander_soumission([])
        repo.add(commande)
        session.commit()
        session.expunge_all()

        rechargée = repo.get("CMD-001")

        assert rechargée.statut_soumission is StatutSoumission.SOUMISE
        assert rechargée.lignes[0].quantité_soumise_kg == Decimal("100.5")
        assert rechargée.numéro_version == 2

    def test_commande_inconnue(self):
        session = make_session()
        assert repository.SqlAlchemyRepository(session).get("CMD-404") is None


class TestStockEtOptions:
    def test_instantané_du_stock(self):
        session = make_session()
        session.execute(insert(orm.stocks), [
            {"article_id": "POULPE", "depot_id": "NDB", "quantite_commercialisable_kg": 80},
            {"article_id": "POULPE", "depot_id": "NDB", "quantite_commercialisable_kg": 20},
        ])

        registre = stock.SqlAlchemyStock(session).instantané()

        assert registre.disponible("POULPE", "NDB") == Decimal("100")
        assert registre.disponible("THON", "NDB") == 0

    def test_options_par_défaut(self):
        session = make_session()
        assert options.SqlAlchemyOptions(session).get("CMD-001") == OptionsParDéfaut()

    def test_options_remplacées(self):
        session = make_session()
        adapter = options.SqlAlchemyOptions(session)

        adapter.save("CMD-001", OptionsParDéfaut(no_conteneur="A"))
        adapter.save("CMD-001", OptionsParDéfaut(no_conteneur="B", numéro_lot="L1"))
        session.commit()

        assert adapter.get("CMD-001") == OptionsParDéfaut(no_conteneur="B", numéro_lot="L1")
