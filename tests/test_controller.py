from __future__ import annotations

import threading
import time

import pytest

from recipebox.controller import DELETE_PROMPT, ViewController, ViewState
from recipebox.errors import InvalidTransition, NotFoundError, StorageWriteError, ValidationError
from recipebox.persistence import STORAGE_KEY, RecipePersistence
from recipebox.repository import RecipeRepository

from conftest import FlakyStore


def add_recipe(controller, **fields):
    controller.start_add()
    for name, value in fields.items():
        controller.set_field(name, value)
    return controller.save_draft()


def test_starts_in_list_view(controller):
    assert controller.state is ViewState.LIST
    assert controller.selected is None
    assert controller.draft.is_empty


def test_add_then_cancel_returns_to_list_unchanged(controller, repository):
    before = repository.list()

    controller.start_add()
    assert controller.state is ViewState.ADD
    controller.set_field("title", "Half written")
    controller.cancel_add()

    assert controller.state is ViewState.LIST
    assert controller.draft.is_empty
    assert repository.list() == before


def test_start_add_resets_the_draft(controller):
    controller.start_add()
    controller.set_field("title", "Leftover")
    controller.cancel_add()

    controller.start_add()

    assert controller.draft.is_empty


def test_saving_valid_draft_creates_recipe_and_returns_to_list(controller):
    recipe = add_recipe(controller, title="Pasta", ingredients="eggs, flour", category="Dinner")

    assert controller.state is ViewState.LIST
    assert controller.draft.is_empty
    assert controller.recipes() == [recipe]
    assert recipe.category == "Dinner"


def test_saving_invalid_draft_stays_in_add(controller):
    controller.start_add()
    controller.set_field("title", "Pasta")

    with pytest.raises(ValidationError) as excinfo:
        controller.save_draft()

    assert excinfo.value.missing_fields == ("ingredients",)
    assert controller.state is ViewState.ADD
    assert controller.draft.get("title") == "Pasta"
    assert controller.recipes() == []


def test_write_failure_keeps_draft_in_add(controller, store):
    controller.start_add()
    controller.set_field("title", "Pasta")
    controller.set_field("ingredients", "eggs")
    store.fail_writes = True

    with pytest.raises(StorageWriteError):
        controller.save_draft()

    assert controller.state is ViewState.ADD
    assert controller.draft.get("ingredients") == "eggs"
    assert controller.recipes() == []


def test_pick_image_sets_reference(controller):
    controller.start_add()

    assert controller.pick_image(lambda: "uploads/cake.jpg") == "uploads/cake.jpg"
    assert controller.draft.get("image") == "uploads/cake.jpg"


def test_cancelled_image_pick_leaves_draft_alone(controller):
    controller.start_add()
    controller.pick_image(lambda: "uploads/cake.jpg")

    assert controller.pick_image(lambda: None) is None
    assert controller.draft.get("image") == "uploads/cake.jpg"


def test_open_detail_and_back(controller):
    recipe = add_recipe(controller, title="Soup", ingredients="water")

    controller.open_detail(recipe.id)
    assert controller.state is ViewState.DETAIL
    assert controller.selected is recipe

    controller.back()
    assert controller.state is ViewState.LIST
    assert controller.selected is None


def test_open_detail_for_missing_recipe_stays_in_list(controller):
    with pytest.raises(NotFoundError):
        controller.open_detail("nope")

    assert controller.state is ViewState.LIST


def test_confirmed_delete_removes_recipe_and_returns_to_list(controller):
    recipe = add_recipe(controller, title="Soup", ingredients="water")
    controller.open_detail(recipe.id)
    prompts = []

    def confirm(message):
        prompts.append(message)
        return True

    assert controller.request_delete(confirm) is True
    assert prompts == [DELETE_PROMPT]
    assert controller.state is ViewState.LIST
    assert controller.selected is None
    assert controller.recipes() == []


def test_declined_delete_keeps_recipe_selected(controller):
    recipe = add_recipe(controller, title="Soup", ingredients="water")
    controller.open_detail(recipe.id)

    assert controller.request_delete(lambda message: False) is False

    assert controller.state is ViewState.DETAIL
    assert controller.selected is recipe
    assert controller.recipes() == [recipe]


def test_dismissed_dialog_counts_as_declined(controller):
    recipe = add_recipe(controller, title="Soup", ingredients="water")
    controller.open_detail(recipe.id)

    def dismissed(message):
        raise RuntimeError("dialog closed")

    assert controller.request_delete(dismissed) is False
    assert controller.state is ViewState.DETAIL
    assert controller.recipes() == [recipe]


def test_failed_delete_stays_in_detail(controller, store):
    recipe = add_recipe(controller, title="Soup", ingredients="water")
    controller.open_detail(recipe.id)
    store.fail_writes = True

    with pytest.raises(StorageWriteError):
        controller.request_delete(lambda message: True)

    assert controller.state is ViewState.DETAIL
    assert controller.selected is recipe
    assert controller.recipes() == [recipe]


def test_selected_recipe_deleted_elsewhere_forces_list(controller, repository):
    recipe = add_recipe(controller, title="Soup", ingredients="water")
    controller.open_detail(recipe.id)

    repository.delete(recipe.id)

    assert controller.state is ViewState.LIST
    assert controller.selected is None


def test_deleting_another_recipe_keeps_detail(controller, repository, clock):
    shown = add_recipe(controller, title="Soup", ingredients="water")
    clock.now += 1
    other = add_recipe(controller, title="Salad", ingredients="lettuce")
    controller.open_detail(shown.id)

    repository.delete(other.id)

    assert controller.state is ViewState.DETAIL
    assert controller.selected is shown


@pytest.mark.parametrize(
    "setup,action",
    (
        (lambda c: None, lambda c: c.cancel_add()),
        (lambda c: None, lambda c: c.save_draft()),
        (lambda c: None, lambda c: c.set_field("title", "x")),
        (lambda c: None, lambda c: c.back()),
        (lambda c: None, lambda c: c.request_delete(lambda m: True)),
        (lambda c: c.start_add(), lambda c: c.start_add()),
        (lambda c: c.start_add(), lambda c: c.back()),
        (lambda c: c.start_add(), lambda c: c.open_detail("1")),
    ),
)
def test_unavailable_triggers_raise_invalid_transition(controller, setup, action):
    setup(controller)
    state = controller.state

    with pytest.raises(InvalidTransition):
        action(controller)

    assert controller.state is state


def test_initialize_reports_unreadable_storage(store):
    store.set(STORAGE_KEY, "]]")
    controller = ViewController(RecipeRepository(RecipePersistence(store)))

    error = controller.initialize()

    assert error is not None
    assert controller.repository.loaded
    assert controller.recipes() == []
    assert controller.state is ViewState.LIST


def test_initialize_returns_none_on_success(persistence):
    controller = ViewController(RecipeRepository(persistence))

    assert controller.initialize() is None


class SlowStore(FlakyStore):
    def set(self, key, value):
        time.sleep(0.05)
        super().set(key, value)


def run_together(action, count=2):
    outcomes = []
    barrier = threading.Barrier(count)

    def worker():
        barrier.wait()
        try:
            outcomes.append(action())
        except InvalidTransition as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def test_overlapping_saves_create_one_recipe():
    store = SlowStore()
    controller = ViewController(RecipeRepository(RecipePersistence(store)))
    controller.initialize()
    controller.start_add()
    controller.set_field("title", "Soup")
    controller.set_field("ingredients", "water")

    outcomes = run_together(controller.save_draft)

    assert len(controller.recipes()) == 1
    assert sum(isinstance(outcome, InvalidTransition) for outcome in outcomes) == 1
    assert controller.state is ViewState.LIST
    assert store.writes == 1


def test_overlapping_deletes_delete_once():
    store = SlowStore()
    controller = ViewController(RecipeRepository(RecipePersistence(store)))
    controller.initialize()
    recipe = add_recipe(controller, title="Soup", ingredients="water")
    controller.open_detail(recipe.id)

    outcomes = run_together(lambda: controller.request_delete(lambda message: True))

    assert outcomes.count(True) == 1
    assert sum(isinstance(outcome, InvalidTransition) for outcome in outcomes) == 1
    assert controller.recipes() == []
    assert controller.state is ViewState.LIST
