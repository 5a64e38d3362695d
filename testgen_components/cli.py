import asyncio
import json
import logging
import os
import time
from pathlib import Path

import click
import yaml
from dotenv import load_dotenv

from testgen_components.content_service import ContentService, build_video_strategies
from testgen_components.errors import AllStrategiesFailedError, ContentUnavailableError
from testgen_components.models import QUESTION_TYPES, QuizRequest
from testgen_components.quiz_generator import QuizGenerator, save_test_files
from testgen_components.quiz_parser import parse_test_content


def configure_logging() -> None:
    """Set up root logging; DEBUG_LOGS=true switches on debug output."""
    load_dotenv()
    debug = os.getenv('DEBUG_LOGS', '').lower() in ('1', 'true', 'yes')
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _progress(message: str) -> None:
    click.echo(f'    {message}')


@click.group()
def cli() -> None:
    """
    Test Generator CLI.

    Fetch transcripts and articles, and generate tests from them.
    """
    configure_logging()


@cli.command('acquire')
@click.argument('content_url')
@click.option('--output', '-o', type=click.Path(), default=None,
              help='File to write the acquired text to (stdout when omitted).')
@click.option('--skip-managed', is_flag=True, default=False,
              help='Do not try the managed transcript service for videos.')
def acquire(content_url: str, output: str, skip_managed: bool) -> None:
    """
    Fetch the text behind CONTENT_URL (video transcript or article).
    """
    start_time = time.time()
    service = ContentService(
        video_strategies=build_video_strategies(include_managed=not skip_managed),
        progress_callback=_progress,
    )

    click.echo(f'🔍 Acquiring content from {content_url}')
    try:
        outcome = asyncio.run(service.acquire(content_url))
    except ValueError as e:
        click.echo(f'❌ Error: {e}')
        raise click.Abort()
    except AllStrategiesFailedError as e:
        click.echo('❌ Every source failed:')
        for error in e.errors:
            click.echo(f'  • {error.source_id}: {error.message}')
        raise click.Abort()

    click.echo(f'✅ Source: {outcome.source_id} ({len(outcome.text)} chars, {time.time() - start_time:.1f}s)')
    if not outcome.is_authoritative:
        click.echo('⚠️  Reconstructed text: timestamps are approximate')

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(outcome.text, encoding='utf-8')
        click.echo(f'📁 Saved to {output_path.absolute()}')
    else:
        click.echo(outcome.text)


@cli.command('generate-test')
@click.argument('content_url')
@click.option('--professor', '-p', type=str, default='', help='Professor name for the header.')
@click.option('--student', '-s', type=str, default='', help='Student name for the header.')
@click.option('--level', '-l', type=str, default='Medium', help='Student level.')
@click.option('--question-type', '-t', 'question_types', type=click.Choice(QUESTION_TYPES), multiple=True,
              help='Question type to include (repeatable). Defaults to multiple-choice and open-ended.')
@click.option('--count', '-n', type=int, default=5, help='Number of questions.')
@click.option('--notes', type=str, default='', help='Additional notes for the generator.')
@click.option('--transcript-file', '-f', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Use this transcript instead of fetching CONTENT_URL.')
@click.option('--output-dir', '-d', type=click.Path(), default='outputs/tests',
              help='Directory to save test.txt and questions.yml.')
def generate_test(content_url: str, professor: str, student: str, level: str, question_types,
                  count: int, notes: str, transcript_file: str, output_dir: str) -> None:
    """
    Generate a test about the content at CONTENT_URL.
    """
    start_time = time.time()
    request = QuizRequest(
        content_url=content_url,
        professor_name=professor,
        student_name=student,
        student_level=level,
        number_of_questions=count,
        additional_notes=notes,
    )
    if question_types:
        request.question_types = list(question_types)

    try:
        generator = QuizGenerator(progress_callback=_progress)
    except ValueError as e:
        click.echo(f'❌ Error: {e}')
        raise click.Abort()

    click.echo('🚀 Starting test generation...')
    try:
        if transcript_file:
            transcript = Path(transcript_file).read_text(encoding='utf-8')
            test = asyncio.run(generator.generate_from_transcript(transcript, request))
        else:
            test = asyncio.run(generator.generate(request))
    except (ValueError, ContentUnavailableError, AllStrategiesFailedError, RuntimeError) as e:
        click.echo(f'❌ Error: {e}')
        raise click.Abort()

    output_path = save_test_files(test, Path(output_dir))
    unanswered = sum(1 for question in test.questions if question.answer is None)

    click.echo('═' * 60)
    click.echo('📊 TEST GENERATION SUMMARY')
    click.echo('═' * 60)
    click.echo(f'📚 Subject: {test.subject}')
    if test.source_id:
        click.echo(f'🔗 Content source: {test.source_id}')
    click.echo(f'🧠 Questions parsed: {len(test.questions)}')
    if unanswered:
        click.echo(f'✍️  Answers to review by hand: {unanswered}')
    click.echo(f'⏱️  Total processing time: {time.time() - start_time:.1f}s')
    click.echo(f'📁 Output location: {output_path.absolute()}')


@cli.command('class-prep')
@click.argument('subject')
@click.option('--level', '-l', type=str, default='Medium', help='Student level.')
@click.option('--skip-conversation', is_flag=True, default=False, help='Do not generate conversation questions.')
@click.option('--skip-tips', is_flag=True, default=False, help='Do not generate teaching tips.')
@click.option('--output-dir', '-d', type=click.Path(), default=None,
              help='Directory to save conversation.txt and teaching_tips.txt.')
def class_prep(subject: str, level: str, skip_conversation: bool, skip_tips: bool, output_dir: str) -> None:
    """
    Generate conversation questions and teaching tips about SUBJECT.
    """
    try:
        generator = QuizGenerator(progress_callback=_progress)
    except ValueError as e:
        click.echo(f'❌ Error: {e}')
        raise click.Abort()

    sections = []
    try:
        if not skip_conversation:
            questions = asyncio.run(generator.generate_conversation_topics(subject, level))
            sections.append(('💬 CONVERSATION QUESTIONS', 'conversation.txt', questions))
        if not skip_tips:
            tips = asyncio.run(generator.generate_teaching_tips(subject, level))
            sections.append(('📝 TEACHING TIPS', 'teaching_tips.txt', tips))
    except (ValueError, RuntimeError) as e:
        click.echo(f'❌ Error: {e}')
        raise click.Abort()

    output_path = Path(output_dir) if output_dir else None
    if output_path:
        output_path.mkdir(parents=True, exist_ok=True)

    for heading, filename, text in sections:
        click.echo('═' * 60)
        click.echo(heading)
        click.echo('═' * 60)
        click.echo(text)
        if output_path:
            (output_path / filename).write_text(text, encoding='utf-8')

    if output_path and sections:
        click.echo(f'📁 Output location: {output_path.absolute()}')


@cli.command('parse-test')
@click.argument('test_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--format', '-f', 'output_format', type=click.Choice(['yaml', 'json']), default='yaml',
              help='Output format for parsed questions.')
def parse_test(test_file: str, output_format: str) -> None:
    """
    Parse a generated test file into structured questions.
    """
    text = Path(test_file).read_text(encoding='utf-8')
    questions = [question.to_dict() for question in parse_test_content(text)]

    if output_format == 'json':
        click.echo(json.dumps(questions, indent=2, ensure_ascii=False))
    else:
        click.echo(yaml.safe_dump(questions, sort_keys=False, allow_unicode=True), nl=False)


if __name__ == '__main__':
    cli()
