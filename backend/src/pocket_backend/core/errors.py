"""Domain exceptions raised by services and translated to HTTP responses by routes."""

from __future__ import annotations


class PocketError(Exception):
    """Base class for user-correctable domain errors."""


# --- Parameters ------------------------------------------------------------
class MissingParameterDefinitionsError(PocketError):
    def __init__(self, parameters: list[str]):
        super().__init__("Parameters found in content but no parameter definitions provided")
        self.parameters = list(parameters)


class UndefinedParametersError(PocketError):
    def __init__(self, missing_parameters: list[str]):
        super().__init__("Some parameters in content have no type definitions")
        self.missing_parameters = list(missing_parameters)


class RequiredValuesMissingError(PocketError):
    def __init__(self, missing: list[str]):
        super().__init__("Values are required for every parameter")
        self.missing = list(missing)


# --- Prompts ---------------------------------------------------------------
class PromptNotFoundError(PocketError):
    def __init__(self, prompt_id: str):
        super().__init__(f"Prompt with ID {prompt_id} not found")
        self.prompt_id = prompt_id


class PromptNameConflictError(PocketError):
    def __init__(self) -> None:
        super().__init__("Prompt with this name already exists")


# --- Tags ------------------------------------------------------------------
class TagNotFoundError(PocketError):
    def __init__(self, tag_id: str):
        super().__init__(f"Tag with ID {tag_id} not found")
        self.tag_id = tag_id


class TagAlreadyExistsError(PocketError):
    def __init__(self, name: str):
        super().__init__(f"Tag '{name}' already exists")
        self.name = name


class DuplicateAssociationError(PocketError):
    def __init__(self, prompt_id: str, tag_id: str):
        super().__init__(f"Prompt with ID {prompt_id} is already associated with tag ID {tag_id}")


class AssociationNotFoundError(PocketError):
    def __init__(self, prompt_id: str, tag_id: str):
        super().__init__(f"Association between prompt ID {prompt_id} and tag ID {tag_id} not found")


class UnauthorizedAssociationError(PocketError):
    def __init__(self) -> None:
        super().__init__("Unauthorized to associate this prompt with this tag")


# --- AI improvement --------------------------------------------------------
class PromptImprovementError(PocketError):
    """The model answered, but not with a usable improvement."""


class PromptImprovementRefusedError(PromptImprovementError):
    """The model declined to improve the prompt (e.g. harmful content)."""
