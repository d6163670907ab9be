"""CLI script to load sample users, resources, deals and posts into the DB.
Usage: python scripts/seed.py [--force]

Tables that already contain rows are left alone unless `--force` is given.
"""
import sys
import argparse
import pathlib
from datetime import date
# Ensure `backend/` is on sys.path so `educonnect` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session, select
from educonnect import models
from educonnect.database import create_db_and_tables, engine
from educonnect.services import PWD_CTX

USERS = [
    dict(email='admin@educonnect.com', password='admin123', name='Administrateur EduConnect', is_student=False),
    dict(email='marie.dupont@etudiant.fr', password='student123', name='Marie Dupont',
         university='Sorbonne Université', field_of_study='Informatique', year_of_study=2,
         student_id='ETU2023001', preferred_categories=['Technology', 'AI', 'Software']),
    dict(email='pierre.martin@etudiant.fr', password='student123', name='Pierre Martin',
         university='Université Paris Cité', field_of_study='Économie', year_of_study=3,
         student_id='ETU2023002', preferred_categories=['Business', 'Grants']),
]

RESOURCES = [
    dict(title='Certification Google Data Analytics', type=models.ResourceType.CERTIFICATE,
         category='Technology', provider='Google', url='https://coursera.org/learn/google-data-analytics',
         description="Cours gratuit de Google pour maîtriser l'analyse de données.",
         is_free=True, deadline=date(2024, 12, 31), duration='6 mois', difficulty='BEGINNER', rating=4.8,
         tags=['data', 'analytics', 'google', 'professional']),
    dict(title="Bourse d'Excellence Eiffel 2024", type=models.ResourceType.GRANT, category='Grants',
         provider='Campus France', url='https://campusfrance.org/bourse-eiffel',
         description='Bourse du gouvernement français pour étudiants internationaux en master et doctorat.',
         is_free=True, deadline=date(2024, 1, 15), location='France',
         tags=['france', 'international', 'master', 'phd']),
    dict(title='Adobe Creative Suite Étudiant', type=models.ResourceType.SOFTWARE, category='Design',
         provider='Adobe', url='https://adobe.com/education',
         description='Licence étudiante gratuite pour tous les logiciels Adobe pendant 6 mois.',
         is_free=True, deadline=date(2024, 6, 30), duration='6 mois',
         tags=['design', 'creative', 'adobe', 'student']),
    dict(title="Introduction à l'IA par Microsoft", type=models.ResourceType.COURSE, category='AI',
         provider='Microsoft', url='https://microsoft.com/learn/ai',
         description="Cours en ligne gratuit sur les fondamentaux de l'intelligence artificielle.",
         is_free=True, duration='8 semaines', difficulty='INTERMEDIATE', rating=4.6,
         tags=['ai', 'machine-learning', 'microsoft', 'beginner']),
    dict(title='Erasmus+ Mobilité Étudiante', type=models.ResourceType.GRANT, category='Grants',
         provider='Union Européenne', url='https://erasmus-plus.ec.europa.eu',
         description="Programme d'échange européen avec bourse complète.",
         is_free=True, deadline=date(2024, 3, 15), location='Europe', tags=['europe', 'exchange']),
]

DEALS = [
    dict(title='MacBook Air M2 Étudiant -30%', company='Apple', category='Technology', discount='30%',
         description='Réduction exclusive pour étudiants sur le nouvel MacBook Air M2.',
         original_price=1299, discounted_price=909, latitude=48.8566, longitude=2.3522,
         address='Apple Store Opéra, Paris', valid_until=date(2024, 12, 31),
         requirements=['Carte étudiante valide', '18-25 ans'], verified=True),
    dict(title='Forfait Étudiant Free Mobile', company='Free Mobile', category='Telecom', discount='50%',
         description='Forfait mobile 100Go pour étudiants avec roaming international.',
         original_price=19.99, discounted_price=9.99, valid_until=date(2024, 6, 30),
         requirements=['Justificatif étudiant', 'RIB'], verified=True),
    dict(title='Repas Étudiant -50%', company='CROUS Restaurant', category='Food', discount='50%',
         description='Menu étudiant complet avec entrée, plat, dessert à prix réduit.',
         original_price=8.50, discounted_price=4.25, latitude=48.8423, longitude=2.3445,
         address='Restaurant CROUS Jussieu', valid_until=date(2024, 12, 31),
         requirements=['Carte étudiante'], verified=True),
    dict(title='Logiciels Adobe Étudiants', company='Adobe', category='Software', discount='60%',
         description='Suite Creative Cloud complète à tarif étudiant réduit.',
         original_price=60.49, discounted_price=23.99, valid_until=date(2024, 8, 31),
         requirements=['Email universitaire', 'Justificatif inscription'], verified=True),
]

POSTS = [
    ('marie.dupont@etudiant.fr', 'Bourses', ['master', 'eiffel', 'candidature'],
     "Quelqu'un a déjà utilisé la bourse d'excellence Eiffel ? Je cherche des conseils pour ma candidature."),
    ('pierre.martin@etudiant.fr', 'Deals', ['mobile', 'reduction', 'free'],
     'À partager : Free Mobile fait 50% de réduction sur leurs forfaits pour les étudiants !'),
    ('marie.dupont@etudiant.fr', 'Cours', ['google', 'data', 'certification'],
     'La certification Google Data Analytics est gratuite et super bien reconnue dans le milieu pro.'),
]


def _is_empty(session: Session, model) -> bool:
    return session.exec(select(model)).first() is None


def main(force: bool = False):
    """Create tables and insert the sample rows, printing a short summary."""
    create_db_and_tables()
    with Session(engine) as session:
        users = {}
        for spec in USERS:
            data = dict(spec)
            password = data.pop('password')
            existing = session.exec(select(models.User).where(models.User.email == data['email'])).first()
            if existing:
                users[existing.email] = existing
                continue
            user = models.User(password_hash=PWD_CTX.hash(password), **data)
            session.add(user)
            users[user.email] = user
        session.commit()
        print(f'Users: {len(users)}')

        if force or _is_empty(session, models.Resource):
            for spec in RESOURCES:
                session.add(models.Resource(**spec))
            session.commit()
            print(f'Created resources: {len(RESOURCES)}')
        else:
            print('Resources already present, skipped')

        if force or _is_empty(session, models.Deal):
            for spec in DEALS:
                session.add(models.Deal(**spec))
            session.commit()
            print(f'Created deals: {len(DEALS)}')
        else:
            print('Deals already present, skipped')

        if force or _is_empty(session, models.Post):
            for email, category, tags, content in POSTS:
                session.add(models.Post(author_id=users[email].id, content=content, category=category, tags=tags))
            session.commit()
            print(f'Created posts: {len(POSTS)}')
        else:
            print('Posts already present, skipped')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--force', action='store_true', help='Insert sample rows even if tables are not empty')
    args = parser.parse_args()
    main(force=args.force)
