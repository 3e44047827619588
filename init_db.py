"""Print the Supabase schema for TestHall and check whether it is already applied."""
import logging

from testhall.database import DatabaseClient

# SQL schema
SCHEMA_SQL = """
-- Scheduled tests
CREATE TABLE IF NOT EXISTS tests (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    title TEXT NOT NULL,
    instructor TEXT,
    date VARCHAR(20),
    time VARCHAR(40),
    duration VARCHAR(40),
    status VARCHAR(10) DEFAULT 'ONLINE' CHECK (status IN ('ONLINE', 'OFFLINE')),
    participants JSONB DEFAULT '[]',
    start_datetime TIMESTAMPTZ,
    end_datetime TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ
);

-- Questions of a test, in display order
CREATE TABLE IF NOT EXISTS test_questions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    test_id UUID NOT NULL REFERENCES tests(id) ON DELETE CASCADE,
    question_id TEXT,
    position INT DEFAULT 0,
    text TEXT NOT NULL,
    subject TEXT,
    image_url TEXT,
    solution TEXT,
    marks DECIMAL(5,2) DEFAULT 4,
    negative_marks DECIMAL(5,2) DEFAULT 1,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS test_options (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    question_id UUID NOT NULL REFERENCES test_questions(id) ON DELETE CASCADE,
    option_id TEXT NOT NULL,
    text TEXT,
    is_correct BOOLEAN DEFAULT FALSE,
    image_url TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- One result per user and test
CREATE TABLE IF NOT EXISTS test_results (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    test_id UUID NOT NULL,
    score DECIMAL(7,2) NOT NULL,
    total_score DECIMAL(7,2) NOT NULL,
    accuracy DECIMAL(5,2) DEFAULT 0,
    time_taken_seconds INT DEFAULT 0,
    correct_answers INT DEFAULT 0,
    incorrect_answers INT DEFAULT 0,
    unattempted_questions INT DEFAULT 0,
    answers JSONB DEFAULT '{}',
    subject_performance JSONB DEFAULT '{}',
    submitted_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(user_id, test_id)
);

CREATE TABLE IF NOT EXISTS rankings (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    test_id UUID NOT NULL,
    batch_rank INT DEFAULT 0,
    batch_total INT DEFAULT 0,
    institute_rank INT DEFAULT 0,
    institute_total INT DEFAULT 0,
    percentile DECIMAL(5,2) DEFAULT 0,
    UNIQUE(user_id, test_id)
);

-- Batches and institutes
CREATE TABLE IF NOT EXISTS batches (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    description TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS institutes (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    description TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_batches (
    user_id UUID NOT NULL,
    batch_id UUID NOT NULL REFERENCES batches(id) ON DELETE CASCADE,
    UNIQUE(user_id, batch_id)
);

CREATE TABLE IF NOT EXISTS user_institutes (
    user_id UUID NOT NULL,
    institute_id UUID NOT NULL REFERENCES institutes(id) ON DELETE CASCADE,
    UNIQUE(user_id, institute_id)
);

CREATE TABLE IF NOT EXISTS profiles (
    id UUID PRIMARY KEY,
    display_name TEXT
);

-- Create indexes for performance
CREATE INDEX IF NOT EXISTS idx_test_questions_test_id ON test_questions(test_id);
CREATE INDEX IF NOT EXISTS idx_test_options_question_id ON test_options(question_id);
CREATE INDEX IF NOT EXISTS idx_test_results_test_id ON test_results(test_id);
CREATE INDEX IF NOT EXISTS idx_test_results_user_id ON test_results(user_id);
CREATE INDEX IF NOT EXISTS idx_rankings_test_id ON rankings(test_id);
"""


def schema_statements():
    return [s.strip() for s in SCHEMA_SQL.split(";") if s.strip()]


def main():
    from db import get_supabase_uncached

    print("TestHall schema")
    try:
        db = DatabaseClient(get_supabase_uncached())
    except ValueError as e:
        print(f"Skipping table check: {e}")
        db = None

    if db is not None and db.tables_exist():
        print("✓ tests table found; schema appears to be applied")
    statements = schema_statements()
    print(f"{len(statements)} statements")
    print("\nSupabase client cannot run DDL; run this SQL in the Supabase SQL Editor:")
    print("Go to: https://app.supabase.com > SQL Editor > New Query")
    print(SCHEMA_SQL)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    main()
