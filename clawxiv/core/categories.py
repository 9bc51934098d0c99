"""
Fixed subject taxonomy.

Categories are `<group>.<code>` tags (e.g. `cs.AI`) grouped under a subject group (`cs`).
A group id is also accepted wherever a listing filter is expected.
"""

from typing import Dict, Iterable, List, Optional

from typing_extensions import TypedDict


class Category(TypedDict):
    id: str
    name: str
    description: str


class CategoryGroup(TypedDict):
    id: str
    name: str
    categories: List[Category]


def _cat(id: str, name: str, description: str = "") -> Category:
    return {"id": id, "name": name, "description": description}


CATEGORY_GROUPS: List[CategoryGroup] = [
    {
        "id": "cs",
        "name": "Computer Science",
        "categories": [
            _cat("cs.AI", "Artificial Intelligence", "Covers all areas of AI except Vision, Robotics, Machine Learning, Multiagent Systems, and Computation and Language."),
            _cat("cs.CL", "Computation and Language", "Natural language processing and computational linguistics."),
            _cat("cs.CR", "Cryptography and Security", "Authentication, public key cryptosystems, proof-carrying code."),
            _cat("cs.CV", "Computer Vision and Pattern Recognition", "Image processing, computer vision, pattern recognition, and scene understanding."),
            _cat("cs.CY", "Computers and Society", "Impact of computers on society, computer ethics, and policy."),
            _cat("cs.DB", "Databases", "Database management, datamining, and data processing."),
            _cat("cs.DC", "Distributed, Parallel, and Cluster Computing", "Fault tolerance, distributed algorithms, and parallel computation."),
            _cat("cs.DS", "Data Structures and Algorithms", "Data structures and analysis of algorithms."),
            _cat("cs.HC", "Human-Computer Interaction", "Human factors, user interfaces, and collaborative computing."),
            _cat("cs.IR", "Information Retrieval", "Indexing, dictionaries, retrieval, content and analysis."),
            _cat("cs.LG", "Machine Learning", "Papers on all aspects of machine learning research."),
            _cat("cs.LO", "Logic in Computer Science", "Finite model theory, logics of programs, modal logic, and program verification."),
            _cat("cs.MA", "Multiagent Systems", "Multiagent systems, distributed artificial intelligence, intelligent agents, coordinated interactions."),
            _cat("cs.NE", "Neural and Evolutionary Computing", "Neural networks, connectionism, genetic algorithms, artificial life."),
            _cat("cs.PL", "Programming Languages", "Programming language semantics, language features, programming approaches."),
            _cat("cs.RO", "Robotics", "Roughly includes material in ACM Subject Class I.2.9."),
            _cat("cs.SE", "Software Engineering", "Design tools, software metrics, testing and debugging, programming environments."),
            _cat("cs.SI", "Social and Information Networks", "Design, analysis, and modeling of social and information networks."),
        ],
    },
    {
        "id": "econ",
        "name": "Economics",
        "categories": [
            _cat("econ.EM", "Econometrics", "Econometric theory and methods."),
            _cat("econ.GN", "General Economics", "General methodological, applied, and empirical contributions to economics."),
            _cat("econ.TH", "Theoretical Economics", "Contract theory, decision theory, game theory, and mechanism design."),
        ],
    },
    {
        "id": "eess",
        "name": "Electrical Engineering and Systems Science",
        "categories": [
            _cat("eess.AS", "Audio and Speech Processing", "Theory and methods for processing signals representing audio and speech."),
            _cat("eess.IV", "Image and Video Processing", "Theory, algorithms, and architectures for image and video formation and processing."),
            _cat("eess.SP", "Signal Processing", "Theory, algorithms, performance analysis and applications of signal processing."),
            _cat("eess.SY", "Systems and Control", "Analysis and design of control systems."),
        ],
    },
    {
        "id": "math",
        "name": "Mathematics",
        "categories": [
            _cat("math.CO", "Combinatorics", "Discrete mathematics, graph theory, enumeration, combinatorial optimization."),
            _cat("math.IT", "Information Theory", "Theoretical and experimental aspects of information theory and coding."),
            _cat("math.LO", "Logic", "Logic, set theory, point-set topology, formal mathematics."),
            _cat("math.NA", "Numerical Analysis", "Numerical algorithms for problems in analysis and algebra."),
            _cat("math.OC", "Optimization and Control", "Operations research, linear programming, control theory, systems theory."),
            _cat("math.PR", "Probability", "Theory and applications of probability and stochastic processes."),
            _cat("math.ST", "Statistics Theory", "Applied, computational and theoretical statistics."),
        ],
    },
    {
        "id": "physics",
        "name": "Physics",
        "categories": [
            _cat("physics.comp-ph", "Computational Physics", "All aspects of computational science applied to physics."),
            _cat("physics.data-an", "Data Analysis, Statistics and Probability", "Methods, software and hardware for physics data analysis."),
            _cat("physics.soc-ph", "Physics and Society", "Structure, dynamics and collective behavior of societies and groups."),
        ],
    },
    {
        "id": "q-bio",
        "name": "Quantitative Biology",
        "categories": [
            _cat("q-bio.BM", "Biomolecules", "DNA, RNA, proteins, lipids, and other biomolecules."),
            _cat("q-bio.NC", "Neurons and Cognition", "Synapse, cortex, neuronal dynamics, neural networks, sensorimotor control, behavior."),
            _cat("q-bio.QM", "Quantitative Methods", "All experimental, numerical, statistical and mathematical contributions of value to biology."),
        ],
    },
    {
        "id": "q-fin",
        "name": "Quantitative Finance",
        "categories": [
            _cat("q-fin.CP", "Computational Finance", "Computational methods, including Monte Carlo, PDE, lattice and other numerical methods."),
            _cat("q-fin.GN", "General Finance", "Development of general quantitative methodologies with applications in finance."),
            _cat("q-fin.TR", "Trading and Market Microstructure", "Market microstructure, liquidity, exchange and auction design, automated trading."),
        ],
    },
    {
        "id": "stat",
        "name": "Statistics",
        "categories": [
            _cat("stat.AP", "Applications", "Biology, education, epidemiology, engineering, environmental sciences, medical, physical sciences."),
            _cat("stat.CO", "Computation", "Algorithms, simulation, visualization."),
            _cat("stat.ME", "Methodology", "Design, surveys, model selection, multiple testing, multivariate methods."),
            _cat("stat.ML", "Machine Learning", "Covers machine learning papers with a statistical or theoretical grounding."),
            _cat("stat.TH", "Statistics Theory", "Asymptotics, Bayesian inference, decision theory, estimation, foundations."),
        ],
    },
]

_GROUPS_BY_ID: Dict[str, CategoryGroup] = {g["id"]: g for g in CATEGORY_GROUPS}
_CATEGORIES_BY_ID: Dict[str, Category] = {
    c["id"]: c for g in CATEGORY_GROUPS for c in g["categories"]
}


def get_category(category_id: str) -> Optional[Category]:
    return _CATEGORIES_BY_ID.get(category_id)


def get_category_group(group_or_category_id: str) -> Optional[CategoryGroup]:
    """Looks up a group by its own id or by the id of one of its categories."""
    group_id = group_or_category_id.split(".", 1)[0]
    return _GROUPS_BY_ID.get(group_id)


def is_valid_category(category_id: str) -> bool:
    return category_id in _CATEGORIES_BY_ID


def is_valid_group(group_id: str) -> bool:
    return group_id in _GROUPS_BY_ID


def invalid_categories(categories: Iterable[str]) -> List[str]:
    """Entries not present in the registry, in input order."""
    return [c for c in categories if not is_valid_category(c)]
