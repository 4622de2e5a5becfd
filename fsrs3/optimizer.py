"""
fsrs3.optimizer
---------

This module defines the optional Optimizer class.
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import replace
from datetime import datetime
import logging
import math
from random import Random

from fsrs3.card import Card
from fsrs3.parameters import (
    DEFAULT_WEIGHTS,
    LOWER_BOUNDS_WEIGHTS,
    UPPER_BOUNDS_WEIGHTS,
    Parameters,
)
from fsrs3.rating import Rating
from fsrs3.review_log import ReviewLog
from fsrs3.scheduler import Scheduler

logger = logging.getLogger(__name__)

try:
    import torch
    from torch.nn import BCELoss
    from torch import optim
    import pandas as pd
    from tqdm import tqdm

    # weight clipping
    LOWER_BOUNDS_WEIGHTS_TENSORS = torch.tensor(
        list(LOWER_BOUNDS_WEIGHTS),
        dtype=torch.float64,
    )

    UPPER_BOUNDS_WEIGHTS_TENSORS = torch.tensor(
        list(UPPER_BOUNDS_WEIGHTS),
        dtype=torch.float64,
    )

    # hyper parameters
    num_epochs = 5
    mini_batch_size = 512
    learning_rate = 4e-2
    max_seq_len = (
        64  # up to the first 64 reviews of each card are used for optimization
    )

    class Optimizer:
        """
        The weight optimizer.

        Fits the 13 memory model weights to a user's review history for more accurate interval calculations.

        Attributes:
            review_logs: A collection of previous ReviewLog objects from a user, one per review actually made.
            _revlogs_train: The collection of review logs, grouped per card and sorted for optimization.
        """

        review_logs: tuple[ReviewLog, ...]
        _revlogs_train: dict[int, list[tuple[datetime, Rating, int]]]

        def __init__(
            self, review_logs: tuple[ReviewLog, ...] | list[ReviewLog]
        ) -> None:
            """
            Initializes the Optimizer with a set of ReviewLogs. Also formats a copy of the review logs for optimization.

            Note that the ReviewLogs provided by the user don't need to be in order.
            """

            self.review_logs = deepcopy(tuple(review_logs))

            # format the ReviewLog data for optimization
            self._revlogs_train = self._format_revlogs()

        def _format_revlogs(self) -> dict[int, list[tuple[datetime, Rating, int]]]:
            """
            Sorts the review logs and groups them per card as (review_datetime, rating, recall) steps.
            """

            if len(self.review_logs) == 0:
                return {}

            review_log_df = pd.DataFrame(
                {
                    "card_id": [log.card_id for log in self.review_logs],
                    "timestamp": [
                        log.review_datetime.timestamp() for log in self.review_logs
                    ],
                    "rating": [int(log.rating) for log in self.review_logs],
                    "review_log": list(self.review_logs),
                }
            )

            # if the card was rated Again, it was not recalled
            review_log_df["recall"] = (
                review_log_df["rating"] != int(Rating.Again)
            ).astype(int)

            review_log_df = review_log_df.sort_values(
                by=["card_id", "timestamp", "rating"],
                ascending=[True, True, True],
                kind="stable",
            ).reset_index(drop=True)

            revlogs_train = {}
            for card_id, card_df in review_log_df.groupby("card_id", sort=True):
                revlogs_train[int(card_id)] = [
                    (review_log.review_datetime, review_log.rating, int(recall))
                    for review_log, recall in zip(
                        card_df["review_log"], card_df["recall"]
                    )
                ]

            return revlogs_train

        def _compute_batch_loss(self, *, parameters: list[float]) -> float:
            """
            Computes the current total loss for the entire batch of review logs.
            """

            params = torch.tensor(parameters, dtype=torch.float64)
            loss_fn = BCELoss()
            scheduler = Scheduler(Parameters(w=params))
            step_losses = []

            for card_id, card_review_history in self._revlogs_train.items():
                card = None
                for x_date, u_rating, y_recall in card_review_history[:max_seq_len]:
                    if card is None:
                        card = Card(card_id=card_id, due=x_date)

                    if card.last_review and (x_date - card.last_review).days > 0:
                        y_pred_retrievability = scheduler.get_card_retrievability(
                            card=card, current_datetime=x_date
                        )
                        step_loss = loss_fn(
                            y_pred_retrievability,
                            torch.tensor(y_recall, dtype=torch.float64),
                        )
                        step_losses.append(step_loss)

                    card, _ = scheduler.review_card(
                        card=card, rating=u_rating, now=x_date
                    )

            if len(step_losses) == 0:
                return 0.0

            batch_loss = torch.sum(torch.stack(step_losses))
            batch_loss = batch_loss.item() / len(step_losses)

            return batch_loss

        def _num_reviews(self) -> int:
            """
            Computes how many non-same-day reviews there are in the dataset.
            Only their loss counts for optimization and their number must
            be computed in advance to properly initialize the Cosine Annealing learning rate scheduler.
            """

            scheduler = Scheduler()
            num_reviews = 0
            for card_id, card_review_history in self._revlogs_train.items():
                card = None
                for review_datetime, rating, _ in card_review_history[:max_seq_len]:
                    if card is None:
                        card = Card(card_id=card_id, due=review_datetime)

                    if card.last_review and (review_datetime - card.last_review).days > 0:
                        num_reviews += 1

                    card, _ = scheduler.review_card(
                        card=card, rating=rating, now=review_datetime
                    )

            return num_reviews

        def compute_optimal_parameters(self, verbose: bool = False) -> list[float]:
            """
            Computes a set of optimized weights for the scheduler and returns it as a list of floats.

            High level explanation of optimization:
            ---------------------------------------
            The scheduler is a many-to-many sequence model where the "State" at each step is a Card object at a given point in time,
            the input is the time of the review and the output is the predicted retrievability of the card at the time of review.

            Each card's review history can be thought of as a sequence, each review as a step and each collection of card review histories
            as a batch.

            The loss is computed by comparing the predicted retrievability of the Card at each step with whether the Card was actually
            successfully recalled or not (0/1).

            Finally, the card objects at each step in their sequences are updated using the current weights of the Scheduler
            as well as the rating given to that card by the user. The weights of the Scheduler are what is being optimized.
            """

            def _update_parameters(
                *,
                step_losses: list,
                adam_optimizer: torch.optim.Adam,
                params: torch.Tensor,
                lr_scheduler: torch.optim.lr_scheduler.CosineAnnealingLR,
            ) -> None:
                """
                Computes and updates the current weights based on the step losses. Also updates the learning rate scheduler.
                """

                # Backpropagate through the loss
                mini_batch_loss = torch.sum(torch.stack(step_losses))
                adam_optimizer.zero_grad()  # clear previous gradients
                mini_batch_loss.backward()  # compute gradients
                adam_optimizer.step()  # Update parameters

                # clamp the weights in place without modifying the computational graph
                with torch.no_grad():
                    params.clamp_(
                        min=LOWER_BOUNDS_WEIGHTS_TENSORS,
                        max=UPPER_BOUNDS_WEIGHTS_TENSORS,
                    )

                # update the learning rate
                lr_scheduler.step()

            def _detach(card: Card) -> Card:
                # remove gradient history from tensor card values for next batch
                return replace(
                    card,
                    stability=(
                        card.stability.detach()
                        if isinstance(card.stability, torch.Tensor)
                        else card.stability
                    ),
                    difficulty=(
                        card.difficulty.detach()
                        if isinstance(card.difficulty, torch.Tensor)
                        else card.difficulty
                    ),
                )

            # set local random seed for reproducibility
            rng = Random(42)

            card_ids = list(self._revlogs_train.keys())

            num_reviews = self._num_reviews()

            if num_reviews < mini_batch_size:
                logger.info(
                    "Only %d reviews available, keeping the default weights",
                    num_reviews,
                )
                return list(DEFAULT_WEIGHTS)

            # Define the weights as torch tensors with gradients
            params = torch.tensor(
                list(DEFAULT_WEIGHTS), requires_grad=True, dtype=torch.float64
            )

            loss_fn = BCELoss()
            adam_optimizer = optim.Adam([params], lr=learning_rate)
            lr_scheduler = optim.lr_scheduler.CosineAnnealingLR(
                optimizer=adam_optimizer,
                T_max=math.ceil(num_reviews / mini_batch_size) * num_epochs,
            )

            best_params = list(DEFAULT_WEIGHTS)
            with torch.no_grad():
                best_loss = self._compute_batch_loss(parameters=best_params)

            # iterate through the epochs
            for epoch in tqdm(
                range(num_epochs),
                desc="Optimizing",
                unit="epoch",
                disable=(not verbose),
            ):
                # randomly shuffle the order of which Card's review histories get computed first
                # at the beginning of each new epoch
                rng.shuffle(card_ids)

                # initialize new scheduler with updated weights each epoch
                scheduler = Scheduler(Parameters(w=params))

                # stores the computed loss of each individual review
                step_losses = []

                # iterate through the card review histories (sequences)
                for card_id in card_ids:
                    card_review_history = self._revlogs_train[card_id][:max_seq_len]

                    card = None
                    # iterate through the current Card's review history (steps)
                    for x_date, u_rating, y_recall in card_review_history:
                        # if this is the first review, create the Card object
                        if card is None:
                            card = Card(card_id=card_id, due=x_date)

                        # only compute step-loss on non-same-day reviews
                        if card.last_review and (x_date - card.last_review).days > 0:
                            # predicted target
                            y_pred_retrievability = scheduler.get_card_retrievability(
                                card=card, current_datetime=x_date
                            )
                            step_loss = loss_fn(
                                y_pred_retrievability,
                                torch.tensor(y_recall, dtype=torch.float64),
                            )
                            step_losses.append(step_loss)

                        # update the card's state
                        card, _ = scheduler.review_card(
                            card=card, rating=u_rating, now=x_date
                        )

                        # take a gradient step after each mini-batch
                        if len(step_losses) == mini_batch_size:
                            _update_parameters(
                                step_losses=step_losses,
                                adam_optimizer=adam_optimizer,
                                params=params,
                                lr_scheduler=lr_scheduler,
                            )

                            # update the scheduler's with the new weights
                            scheduler = Scheduler(Parameters(w=params))
                            # clear the step losses for next batch
                            step_losses = []

                            card = _detach(card)

                # update params on remaining review logs
                if len(step_losses) > 0:
                    _update_parameters(
                        step_losses=step_losses,
                        adam_optimizer=adam_optimizer,
                        params=params,
                        lr_scheduler=lr_scheduler,
                    )

                # compute the current batch loss after each epoch
                detached_params = [
                    x.detach().item() for x in list(params.detach())
                ]  # convert to floats
                with torch.no_grad():
                    epoch_batch_loss = self._compute_batch_loss(
                        parameters=detached_params
                    )

                logger.debug("Epoch %d batch loss %.6f", epoch, epoch_batch_loss)

                # if the batch loss is better with the current weights, update the current best weights
                if epoch_batch_loss < best_loss:
                    best_loss = epoch_batch_loss
                    best_params = detached_params

            return best_params

except ImportError:

    class Optimizer:
        def __init__(self, *args, **kwargs) -> None:
            raise ImportError(
                'Optimizer is not installed.\nInstall it with: pip install "fsrs3[optimizer]"'
            )


__all__ = ["Optimizer"]
