import asyncio
import logging
import uuid
from datetime import date, datetime

import asyncpg
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from .config import settings
from .logging_config import setup_logging
from .models.movie import Base

logger = logging.getLogger(__name__)

GENRES = [
    "Action", "Adventure", "Animation", "Comedy", "Crime",
    "Documentary", "Drama", "Family", "Fantasy", "Horror",
    "Mystery", "Romance", "Science Fiction", "Thriller", "War",
]

COMPANIES = [
    ("Warner Bros. Pictures", "US", "https://www.warnerbros.com"),
    ("Paramount Pictures", "US", "https://www.paramount.com"),
    ("Legendary Entertainment", "US", "https://www.legendary.com"),
    ("Studio Ghibli", "JP", "https://www.ghibli.jp"),
    ("Toho", "JP", "https://www.toho.co.jp"),
    ("CJ Entertainment", "KR", "https://www.cjenm.com"),
    ("A24", "US", "https://a24films.com"),
]

PEOPLE = [
    ("Christopher Nolan", "Directing"),
    ("Bong Joon-ho", "Directing"),
    ("Hayao Miyazaki", "Directing"),
    ("Leonardo DiCaprio", "Acting"),
    ("Matthew McConaughey", "Acting"),
    ("Christian Bale", "Acting"),
    ("Song Kang-ho", "Acting"),
    ("Park So-dam", "Acting"),
    ("Hans Zimmer", "Sound"),
    ("Joe Hisaishi", "Sound"),
]

# Sample catalog
MOVIES = [
    {
        "title": "Inception",
        "original_language": "en",
        "overview": "A thief who steals corporate secrets through the use of dream-sharing technology is given the inverse task of planting an idea into the mind of a C.E.O.",
        "release": date(2010, 7, 16),
        "runtime": 148,
        "budget": 160000000,
        "revenue": 836836967,
        "homepage": "https://www.warnerbros.com/movies/inception",
        "poster": "/9gk7adHYeDvHkCSEqAvQNLV5Ber.jpg",
        "backdrop": "/s3TBrRGB1iav7gFOCNx3H31MoES.jpg",
        "genres": ["Action", "Science Fiction", "Adventure"],
        "companies": ["Warner Bros. Pictures", "Legendary Entertainment"],
        "stats": (87.3, 8.4, 34500),
        "cast": ["Leonardo DiCaprio"],
        "director": "Christopher Nolan",
        "composer": "Hans Zimmer",
    },
    {
        "title": "The Dark Knight",
        "original_language": "en",
        "overview": "Batman raises the stakes in his war on crime, setting out to dismantle the remaining criminal organizations that plague the streets.",
        "release": date(2008, 7, 18),
        "runtime": 152,
        "budget": 185000000,
        "revenue": 1004558444,
        "homepage": "https://www.warnerbros.com/movies/dark-knight",
        "poster": "/qJ2tW6WMUDux911r6m7haRef0WH.jpg",
        "backdrop": "/nMKdUUepR0i5zn0y1T4CsSB5chy.jpg",
        "genres": ["Action", "Crime", "Drama", "Thriller"],
        "companies": ["Warner Bros. Pictures", "Legendary Entertainment"],
        "stats": (95.0, 9.0, 29800),
        "cast": ["Christian Bale"],
        "director": "Christopher Nolan",
        "composer": "Hans Zimmer",
    },
    {
        "title": "Interstellar",
        "original_language": "en",
        "overview": "A team of explorers travel through a wormhole in space in an attempt to ensure humanity's survival.",
        "release": date(2014, 11, 7),
        "runtime": 169,
        "budget": 165000000,
        "revenue": 677471339,
        "homepage": "https://www.interstellarmovie.com",
        "poster": "/gEU2QniE6E77NI6lCU6MxlNBvIx.jpg",
        "backdrop": "/xJHokMbljvjADYdit5fK5VQsXEG.jpg",
        "genres": ["Adventure", "Drama", "Science Fiction"],
        "companies": ["Warner Bros. Pictures", "Paramount Pictures", "Legendary Entertainment"],
        "stats": (92.7, 8.6, 32100),
        "cast": ["Matthew McConaughey"],
        "director": "Christopher Nolan",
        "composer": "Hans Zimmer",
    },
    {
        "title": "Parasite",
        "original_language": "ko",
        "overview": "All unemployed, Ki-taek's family takes peculiar interest in the wealthy and glamorous Parks until they get entangled in an unexpected incident.",
        "release": date(2019, 5, 30),
        "runtime": 132,
        "budget": 11400000,
        "revenue": 258773700,
        "homepage": "https://www.parasite-movie.com",
        "poster": "/7IiTTgloJzvGI1TAYymCfbfl3vT.jpg",
        "backdrop": "/TU9NIjwzjoKPwQHoHshkFcQUCG.jpg",
        "genres": ["Comedy", "Thriller", "Drama"],
        "companies": ["CJ Entertainment"],
        "stats": (89.5, 8.5, 16200),
        "cast": ["Song Kang-ho", "Park So-dam"],
        "director": "Bong Joon-ho",
        "composer": None,
    },
    {
        "title": "Spirited Away",
        "original_language": "ja",
        "overview": "A young girl, Chihiro, becomes trapped in a strange new world of spirits and must call upon the courage she never knew she had.",
        "release": date(2001, 7, 20),
        "runtime": 125,
        "budget": 19000000,
        "revenue": 395580000,
        "homepage": "https://www.ghibli.jp/works/chihiro",
        "poster": "/39wmItIWsg5sZMyRUHLkWBcuVCM.jpg",
        "backdrop": "/6oaL4DP75yABrd5EbC4H2zq5ghc.jpg",
        "genres": ["Animation", "Family", "Fantasy"],
        "companies": ["Studio Ghibli", "Toho"],
        "stats": (88.0, 8.5, 14800),
        "cast": [],
        "director": "Hayao Miyazaki",
        "composer": "Joe Hisaishi",
    },
]

TRANSLATIONS = {
    "ja": ("日本語", "日本語翻訳"),
    "es": ("Español", "Traducción al español"),
    "fr": ("Français", "Traduction française"),
}


def schema_ddl():
    """CREATE TABLE statements for the catalog, in dependency order"""
    dialect = postgresql.dialect()
    return [
        str(CreateTable(table, if_not_exists=True).compile(dialect=dialect))
        for table in Base.metadata.sorted_tables
    ]


async def create_schema(conn: asyncpg.Connection):
    for statement in schema_ddl():
        await conn.execute(statement)
    for table in Base.metadata.sorted_tables:
        for index in table.indexes:
            await conn.execute(str(CreateIndex(index, if_not_exists=True).compile(dialect=postgresql.dialect())))


async def insert_catalog(conn: asyncpg.Connection):
    now = datetime.now()

    genre_ids = {name: uuid.uuid4() for name in GENRES}
    await conn.executemany(
        "INSERT INTO genres (id, name) VALUES ($1, $2)",
        [(gid, name) for name, gid in genre_ids.items()],
    )
    logger.info("Genres seeded", extra={"operation": "seed genres"})

    company_ids = {name: uuid.uuid4() for name, _, _ in COMPANIES}
    await conn.executemany(
        "INSERT INTO companies (id, name, origin_country, homepage) VALUES ($1, $2, $3, $4)",
        [(company_ids[name], name, country, homepage) for name, country, homepage in COMPANIES],
    )

    person_ids = {name: uuid.uuid4() for name, _ in PEOPLE}
    await conn.executemany(
        "INSERT INTO people (id, name, known_for) VALUES ($1, $2, $3)",
        [(person_ids[name], name, known_for) for name, known_for in PEOPLE],
    )
    logger.info("Companies and people seeded", extra={"operation": "seed people"})

    for movie in MOVIES:
        movie_id = uuid.uuid4()
        await conn.execute(
            """
            INSERT INTO movies (
                id, title, original_title, original_language, overview,
                release_date, runtime, adult, homepage, poster_path, backdrop_path,
                budget, revenue, created_at, updated_at
            ) VALUES ($1, $2, $2, $3, $4, $5, $6, false, $7, $8, $9, $10, $11, $12, $12)
            """,
            movie_id, movie["title"], movie["original_language"], movie["overview"],
            movie["release"], movie["runtime"], movie["homepage"], movie["poster"],
            movie["backdrop"], movie["budget"], movie["revenue"], now,
        )

        popularity, vote_average, vote_count = movie["stats"]
        await conn.execute(
            "INSERT INTO movie_stats (movie_id, popularity, vote_average, vote_count) VALUES ($1, $2, $3, $4)",
            movie_id, popularity, vote_average, vote_count,
        )

        await conn.executemany(
            "INSERT INTO movie_genres (movie_id, genre_id) VALUES ($1, $2)",
            [(movie_id, genre_ids[name]) for name in movie["genres"]],
        )
        await conn.executemany(
            "INSERT INTO movie_companies (movie_id, company_id) VALUES ($1, $2)",
            [(movie_id, company_ids[name]) for name in movie["companies"]],
        )

        await conn.executemany(
            """
            INSERT INTO credits (id, movie_id, person_id, credit_type, character_name, cast_order)
            VALUES ($1, $2, $3, 'cast', $4, $5)
            """,
            [
                (uuid.uuid4(), movie_id, person_ids[name], f"Character {name}", order)
                for order, name in enumerate(movie["cast"], start=1)
            ],
        )
        crew = [("Directing", "Director", movie["director"])]
        if movie["composer"]:
            crew.append(("Sound", "Original Music Composer", movie["composer"]))
        await conn.executemany(
            """
            INSERT INTO credits (id, movie_id, person_id, credit_type, department, job)
            VALUES ($1, $2, $3, 'crew', $4, $5)
            """,
            [(uuid.uuid4(), movie_id, person_ids[name], department, job) for department, job, name in crew],
        )

        await conn.executemany(
            "INSERT INTO movie_translations (movie_id, language, title, overview) VALUES ($1, $2, $3, $4)",
            [
                (movie_id, lang, f"{movie['title']} ({title_suffix})", f"{movie['overview']} ({overview_suffix})")
                for lang, (title_suffix, overview_suffix) in TRANSLATIONS.items()
            ],
        )

    logger.info(f"Inserted {len(MOVIES)} movies")


async def seed_data(dsn: str = settings.DATABASE_URL):
    logger.info("Starting data seeding")
    conn = await asyncpg.connect(dsn)
    try:
        # Partial seeds never persist
        async with conn.transaction():
            await create_schema(conn)
            await insert_catalog(conn)
    finally:
        await conn.close()
    logger.info("Seeding complete")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed_data())
