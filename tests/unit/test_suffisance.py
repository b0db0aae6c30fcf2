from decimal import Decimal

from cargaison.domain.model import LigneDeCommande
from cargaison.domain.stock import EntréeStock, RegistreStock
from cargaison.domain.suffisance import Sévérité, classer, collecter_problèmes


def registre(**disponibles) -> RegistreStock:
    return RegistreStock(
        EntréeStock.créer(article, "NDB", quantité) for article, quantité in disponibles.items()
    )


class TestClasser:
    def test_stock_suffisant(self):
        assert classer(100, 150).sévérité is Sévérité.SUFFISANT

    def test_stock_partiel(self):
        évaluation = classer(100, 60)
        assert évaluation.sévérité is Sévérité.PARTIEL
        assert évaluation.manquant_kg == Decimal("40")

    def test_aucun_stock(self):
        évaluation = classer(100, 0)
        assert évaluation.sévérité is Sévérité.INDISPONIBLE
        assert évaluation.manquant_kg == Decimal("100")

    def test_stock_négatif_traité_comme_nul(self):
        assert classer(10, -5).sévérité is Sévérité.INDISPONIBLE

    def test_édition_seul_l_écart_est_évalué(self):
        évaluation = classer(150, 30, quantité_initiale_kg=100)
        assert évaluation.sévérité is Sévérité.PARTIEL
        assert évaluation.évalué_kg == Decimal("50")
        assert évaluation.manquant_kg == Decimal("20")

    def test_édition_une_baisse_n_a_pas_besoin_de_stock(self):
        assert classer(80, 0, quantité_initiale_kg=100).sévérité is Sévérité.SUFFISANT

    def test_édition_quantité_inchangée(self):
        assert classer(100, 0, quantité_initiale_kg=100).sévérité is Sévérité.SUFFISANT


class TestRegistreStock:
    def test_couple_absent(self):
        assert registre().disponible("POULPE", "NDB") == 0

    def test_entrées_cumulées(self):
        stock = RegistreStock([
            EntréeStock.créer("POULPE", "NDB", 10),
            EntréeStock.créer("POULPE", "NDB", "2.5"),
        ])
        assert stock.disponible("POULPE", "NDB") == Decimal("12.5")
        assert len(stock) == 1


class TestCollecterProblèmes:
    def test_création(self):
        lignes = [
            LigneDeCommande("POULPE", "NDB", 100),
            LigneDeCommande("THON", "NDB", 50),
            LigneDeCommande("SEICHE", "NDB", 20),
        ]

        problèmes = collecter_problèmes(lignes, registre(POULPE=200, THON=20))

        assert [(p.article_id, p.sévérité) for p in problèmes] == [
            ("THON", Sévérité.PARTIEL),
            ("SEICHE", Sévérité.INDISPONIBLE),
        ]
        assert problèmes[0].manquant_kg == Decimal("30")

    def test_lignes_incomplètes_ignorées(self):
        lignes = [LigneDeCommande("POULPE", None, 100)]
        assert collecter_problèmes(lignes, registre()) == []

    def test_édition(self):
        lignes = [
            LigneDeCommande("POULPE", "NDB", 120),
            LigneDeCommande("THON", "NDB", 40),
        ]
        initiales = {("POULPE", "NDB"): Decimal("100")}

        problèmes = collecter_problèmes(lignes, registre(POULPE=5, THON=10), initiales)

        assert [(p.article_id, p.demandé_kg, p.manquant_kg) for p in problèmes] == [
            ("POULPE", Decimal("20"), Decimal("15")),
            ("THON", Decimal("40"), Decimal("30")),
        ]

    def test_message(self):
        [problème] = collecter_problèmes([LigneDeCommande("THON", "NDB", 50)], registre())
        assert "aucun stock" in problème.message
