import sys
from typing import List

from testgen_components.cli import cli


def _prompt_args(cmd_name: str) -> List[str]:
    """Collect arguments for one command from the terminal."""
    if cmd_name == 'acquire':
        content_url = input("Enter content URL (video or article): ").strip()
        output = input("Output file path (leave blank for stdout): ").strip()
        args = [cmd_name, content_url]
        if output:
            args.extend(['-o', output])
        return args

    if cmd_name == 'generate-test':
        content_url = input("Enter content URL (video or article): ").strip()
        professor = input("Professor name (leave blank to skip): ").strip()
        student = input("Student name (leave blank to skip): ").strip()
        count = input("Number of questions [5]: ").strip() or '5'
        args = [cmd_name, content_url]
        if professor:
            args.extend(['-p', professor])
        if student:
            args.extend(['-s', student])
        if count != '5':
            args.extend(['-n', count])
        return args

    if cmd_name == 'class-prep':
        subject = input("Subject for the class: ").strip()
        level = input("Student level [Medium]: ").strip()
        args = [cmd_name, subject]
        if level:
            args.extend(['-l', level])
        return args

    if cmd_name == 'parse-test':
        test_file = input("Path to the generated test file: ").strip()
        return [cmd_name, test_file]

    return [cmd_name]


def interactive_menu() -> None:
    """
    Interactive menu to select and run available CLI features.
    """
    commands = list(cli.commands.keys())

    print("Available features:")
    for idx, name in enumerate(commands, start=1):
        help_text = (cli.commands[name].help or '').strip().splitlines()
        print(f"{idx}. {name} - {help_text[0] if help_text else ''}")

    choice = input("Enter the number of the feature: ").strip()
    try:
        sel = int(choice)
    except ValueError:
        print("Invalid choice.")
        sys.exit(1)

    if sel < 1 or sel > len(commands):
        print("Invalid choice.")
        sys.exit(1)

    args = _prompt_args(commands[sel - 1])
    try:
        cli.main(args=args, standalone_mode=False)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


def main() -> None:
    """
    Entry point for the Test Generator CLI.
    If no arguments are provided, launch interactive menu.
    """
    if len(sys.argv) == 1:
        interactive_menu()
    else:
        cli()


if __name__ == '__main__':  # pragma: no cover
    main()
