from turfbook.db.models import Court
from turfbook.db.session import SessionLocal


def seed_demo_court() -> None:
    session = SessionLocal()
    try:
        existing = session.query(Court).filter(Court.name == "Court A").first()
        if existing is not None:
            if not existing.is_active:
                existing.is_active = True
                session.commit()
            print(f"Demo court already exists with id={existing.id}")
            return

        court = Court(name="Court A", is_active=True)
        session.add(court)
        session.commit()
        session.refresh(court)
        print(f"Created demo court with id={court.id}")
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_court()
