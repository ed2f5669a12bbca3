from sqlalchemy import (
    BigInteger, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer,
    String, Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class MovieDB(Base):
    """
    ORM Model - Mapping 1-1 with table 'movies' in Postgres
    """
    __tablename__ = 'movies'

    id = Column(UUID(as_uuid=True), primary_key=True)
    title = Column(String(255), nullable=False)
    original_title = Column(String(255))
    original_language = Column(String(8))
    tag_line = Column(Text)
    overview = Column(Text)
    release_date = Column(Date)
    runtime = Column(Integer)
    adult = Column(Boolean, nullable=False, default=False)
    homepage = Column(String(500))
    poster_path = Column(String(500))
    backdrop_path = Column(String(500))
    budget = Column(BigInteger)
    revenue = Column(BigInteger)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class MovieTranslationDB(Base):
    __tablename__ = 'movie_translations'

    movie_id = Column(UUID(as_uuid=True), ForeignKey('movies.id', ondelete='CASCADE'), primary_key=True)
    language = Column(String(8), primary_key=True)
    title = Column(String(255))
    overview = Column(Text)


class MovieStatsDB(Base):
    __tablename__ = 'movie_stats'

    movie_id = Column(UUID(as_uuid=True), ForeignKey('movies.id', ondelete='CASCADE'), primary_key=True)
    popularity = Column(Float)
    vote_average = Column(Float)
    vote_count = Column(Integer)


class GenreDB(Base):
    __tablename__ = 'genres'

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(100), unique=True, nullable=False)


class MovieGenreDB(Base):
    __tablename__ = 'movie_genres'

    movie_id = Column(UUID(as_uuid=True), ForeignKey('movies.id', ondelete='CASCADE'), primary_key=True)
    genre_id = Column(UUID(as_uuid=True), ForeignKey('genres.id', ondelete='CASCADE'), primary_key=True)


class CompanyDB(Base):
    __tablename__ = 'companies'

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(255), nullable=False)
    origin_country = Column(String(2))
    homepage = Column(String(500))


class MovieCompanyDB(Base):
    __tablename__ = 'movie_companies'

    movie_id = Column(UUID(as_uuid=True), ForeignKey('movies.id', ondelete='CASCADE'), primary_key=True)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), primary_key=True)


class PersonDB(Base):
    __tablename__ = 'people'

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(255), nullable=False)
    known_for = Column(String(100))
    profile_path = Column(String(500))


class CreditDB(Base):
    __tablename__ = 'credits'

    id = Column(UUID(as_uuid=True), primary_key=True)
    movie_id = Column(UUID(as_uuid=True), ForeignKey('movies.id', ondelete='CASCADE'), nullable=False, index=True)
    person_id = Column(UUID(as_uuid=True), ForeignKey('people.id', ondelete='CASCADE'), nullable=False)
    credit_type = Column(String(20), nullable=False)  # 'cast' or 'crew'
    character_name = Column(String(255))
    cast_order = Column(Integer)
    department = Column(String(100))
    job = Column(String(100))
