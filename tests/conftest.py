import pytest                                  # Pytest fixtures shared across test modules

from src.models.session import ModelSession    # Session object owning the trained model


CSV_WITH_LABELS = (                            # Small labelled batch covering all three diseases
    "age,gender,residence,fever,chills,jaundice,platelets,AST,ALT,total_bilirubin,diagnosis\n"
    "30,M,urban,1,0,0,90,25,22,0.9,dengue\n"
    "45,F,rural,1,1,0,150,30,28,1.9,malaria\n"
    "52,M,urbana,1,1,1,260,110,95,3.1,leptospirosis\n"
    "38,F,rural,1,0,0,120,20,18,0.7,Dengue\n"
)


@pytest.fixture
def labelled_csv() -> str:
    return CSV_WITH_LABELS                     # Raw delimited text as uploaded by a client


@pytest.fixture(scope="module")
def trained_session() -> ModelSession:
    session = ModelSession()                   # Fresh session with default honest calibration
    session.train(                             # Quick logistic model on a small synthetic cohort
        model_type="logistic",
        samples=150,
        epochs=20,
        seed=0,
    )
    return session
