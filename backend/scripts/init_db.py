"""Initialize the database - creates all tables and optional demo data."""
import argparse
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from engagement.database import engine, Base, SessionLocal
import engagement.models  # noqa: F401 - registers all models
from engagement.models.community import CommunityCategory
from engagement.models.user import User

DEMO_USERS = [
    ("admin001", "관리자", "admin"),
    ("user001", "사용자1", "user"),
    ("user002", "사용자2", "user"),
]

DEMO_CATEGORIES = [
    ("기술 교류", "기술 토론과 질문 답변"),
    ("사례 공유", "성공 사례와 경험 공유"),
    ("제품 피드백", "제품 제안과 기능 요청"),
    ("업계 동향", "업계 뉴스와 트렌드 분석"),
]


def init_db(seed: bool = False):
    print("Creating all database tables...")
    Base.metadata.create_all(bind=engine)
    if seed:
        db = SessionLocal()
        try:
            for login_id, name, role in DEMO_USERS:
                if db.query(User).filter(User.login_id == login_id).first():
                    continue
                db.add(User(login_id=login_id, name=name, role=role))
            for name, description in DEMO_CATEGORIES:
                if db.query(CommunityCategory).filter(CommunityCategory.name == name).first():
                    continue
                db.add(CommunityCategory(name=name, description=description, post_count=0, status="active"))
            db.commit()
        finally:
            db.close()
        print(f"Seeded {len(DEMO_USERS)} demo users and {len(DEMO_CATEGORIES)} community categories.")
    print("Database initialized successfully.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="insert demo users and community categories")
    init_db(seed=parser.parse_args().seed)
